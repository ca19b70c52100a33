"""Data model for translation units and the lookup index built from them."""

from dataclasses import dataclass
from typing import Optional

from .text_processor import canonicalize_escapes, expand_newlines

# How a line pair is cleaned before indexing
MODE_EVENT_TEXT = "event_text"  # dialogue / database text: escapes expanded
MODE_LABEL = "label"            # map display names: both sides trimmed
MODE_RAW = "raw"                # System.json / plugins.js: used verbatim


class ReinsertError(Exception):
    """Base class for fatal errors raised while writing a translation."""


class LineCountMismatchError(ReinsertError, ValueError):
    """Original and translated line files have different lengths."""

    def __init__(self, original_source: str, translated_source: str,
                 original_count: int, translated_count: int):
        self.original_source = original_source
        self.translated_source = translated_source
        self.original_count = original_count
        self.translated_count = translated_count
        super().__init__(
            f"{original_source} has {original_count} lines but "
            f"{translated_source} has {translated_count}; refusing to "
            "pair them positionally"
        )


class MalformedDocumentError(ReinsertError):
    """A data file could not be parsed."""


@dataclass(frozen=True)
class TranslationUnit:
    """One original line and its translation at the same file position."""
    position: int      # 0-based line number in both files
    original: str      # Cleaned original text (index key)
    translation: str   # Cleaned translated text


def _clean_pair(original: str, translation: str, mode: str) -> tuple:
    if mode == MODE_EVENT_TEXT:
        return expand_newlines(original), expand_newlines(translation).strip()
    if mode == MODE_LABEL:
        return original.strip(), translation.strip()
    if mode == MODE_RAW:
        return original, translation
    raise ValueError(f"Unknown line mode: {mode!r}")


def build_units(original_lines: list, translated_lines: list,
                mode: str = MODE_EVENT_TEXT,
                original_source: str = "original",
                translated_source: str = "translation") -> list:
    """Pair two positional line lists into TranslationUnits.

    Raises:
        LineCountMismatchError: if the lists differ in length.
    """
    if len(original_lines) != len(translated_lines):
        raise LineCountMismatchError(original_source, translated_source,
                                     len(original_lines), len(translated_lines))
    units = []
    for pos, (orig, trans) in enumerate(zip(original_lines, translated_lines)):
        key, value = _clean_pair(orig, trans, mode)
        units.append(TranslationUnit(position=pos, original=key, translation=value))
    return units


class TranslationIndex:
    """Read-only original -> translation lookup for one substitution pass.

    Keys keep file order. With duplicate originals the last line wins,
    matching the positional (non-deduplicated) files; pass dedupe=True
    to keep the first occurrence instead.

    With canonical=True (event text) lookups canonicalize the
    name-reference escape, so \\n[1] in a document matches \\N[1] in the
    line file. Other indexes match verbatim.
    """

    def __init__(self, units: list = (), dedupe: bool = False,
                 canonical: bool = False, name: str = ""):
        self.name = name
        self.canonical = canonical
        self._map = {}
        for unit in units:
            if dedupe and unit.original in self._map:
                continue
            self._map[unit.original] = unit.translation

    @classmethod
    def from_lines(cls, original_lines: list, translated_lines: list,
                   mode: str = MODE_EVENT_TEXT, dedupe: bool = False,
                   original_source: str = "original",
                   translated_source: str = "translation") -> "TranslationIndex":
        units = build_units(original_lines, translated_lines, mode,
                            original_source, translated_source)
        return cls(units, dedupe=dedupe, canonical=mode == MODE_EVENT_TEXT,
                   name=original_source)

    def _key(self, text: str) -> str:
        return canonicalize_escapes(text) if self.canonical else text

    def lookup(self, text: str) -> Optional[str]:
        """Return the translation of *text*, or None if it has none."""
        return self._map.get(self._key(text))

    def items(self):
        return self._map.items()

    def __contains__(self, text) -> bool:
        return isinstance(text, str) and self._key(text) in self._map

    def __len__(self) -> int:
        return len(self._map)

    def __repr__(self) -> str:
        return f"<TranslationIndex {self.name or '?'} ({len(self)} entries)>"
