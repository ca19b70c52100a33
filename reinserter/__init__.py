"""RPG Maker MV/MZ translation re-inserter.

Writes translated line files back into the game's data/*.json files and
js/plugins.js.
"""

# \n[1] and \N[1] both insert an actor name; extraction tools disagree on case.
NAME_REF_ESCAPE = "\\n["
NAME_REF_CANONICAL = "\\N["

# Literal backslash-n written into line files where a block had a line break.
NEWLINE_ESCAPE = "\\n"

__version__ = "1.0.0"
