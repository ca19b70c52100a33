"""Text helpers shared by the index builder and the writer.

Escape canonicalization for line files and event text, the heuristics
table, and the classifier that separates prose labels from internal
identifiers (switch names, debug events, placeholder items).
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field, fields

from . import NAME_REF_CANONICAL, NAME_REF_ESCAPE, NEWLINE_ESCAPE

log = logging.getLogger(__name__)

HEURISTICS_FILE = os.path.join(os.path.dirname(__file__), "heuristics.json")

# Identifier-looking endings: "Level 5", "LegHURT", "DOOR A"
_TRAILING_CODE_RE = re.compile(r'\d$|\s*[A-Z]+$')


def canonicalize_escapes(text: str) -> str:
    """Force the name-reference escape into its canonical \\N[ form."""
    return text.replace(NAME_REF_ESCAPE, NAME_REF_CANONICAL)


def expand_newlines(text: str) -> str:
    """Turn the literal \\n escape of line files into real line breaks.

    Must run after canonicalize_escapes(), otherwise \\n[1] would be split.
    """
    return canonicalize_escapes(text).replace(NEWLINE_ESCAPE, "\n")


def split_lines(text: str) -> list:
    """Split a line file into records.

    Handles CRLF files and drops the empty record produced by a final
    newline, so files saved with and without one line up the same way.
    """
    if text.endswith("\n"):
        text = text[:-1]
    return [line[:-1] if line.endswith("\r") else line
            for line in text.split("\n")]


@dataclass
class Heuristics:
    """Word lists steering the classifier and the writer.

    Loaded from heuristics.json; every list there encodes a correction
    found while translating a real game, so they are kept as data.
    """
    version: int = 0
    useless_names: list = field(default_factory=list)
    useless_prefixes: list = field(default_factory=list)
    keep_suffixes: list = field(default_factory=list)
    keep_prefixes: list = field(default_factory=list)
    plugin_text_prefixes: list = field(default_factory=list)
    plugin_placeholder_suffix: str = ""
    variables_sentinel: str = ""
    note_menu_categories: list = field(default_factory=list)
    text_plugins: list = field(default_factory=list)

    @classmethod
    def load(cls, path: str = None) -> "Heuristics":
        """Load the table from *path* (packaged heuristics.json by default)."""
        path = path or HEURISTICS_FILE
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            log.warning("Ignoring unknown heuristics keys in %s: %s",
                        path, ", ".join(unknown))
        heuristics = cls(**{k: v for k, v in data.items() if k in known})
        log.debug("Loaded heuristics v%d from %s", heuristics.version, path)
        return heuristics


class LineClassifier:
    """Decides whether a short label is an internal identifier."""

    def __init__(self, heuristics: Heuristics):
        self._names = frozenset(heuristics.useless_names)
        self._prefixes = tuple(heuristics.useless_prefixes)

    def is_useless(self, text: str) -> bool:
        """True if *text* looks like an identifier rather than prose.

        Any rule matching is enough: an underscore, a double hyphen, a
        trailing digit or uppercase run, a denylisted name, or a
        denylisted prefix (comment markers, placeholders, category tags).
        """
        if "_" in text or "--" in text:
            return True
        if _TRAILING_CODE_RE.search(text):
            return True
        if text in self._names:
            return True
        return text.startswith(self._prefixes)
