"""Write pipeline: loads a project, translates every document, saves it.

All inputs are read and every document is translated in memory before the
first output file is written, so a missing file or a misaligned line pair
never leaves a half-translated data folder behind.
"""

import json
import logging
import os
from dataclasses import dataclass, fields

from PyQt6.QtCore import QObject, pyqtSignal

from .project_model import (
    MODE_EVENT_TEXT, MODE_LABEL, MODE_RAW,
    MalformedDocumentError, ReinsertError, TranslationIndex,
)
from .rpgmaker_mv import RPGMakerMVWriter
from .text_processor import Heuristics, split_lines

log = logging.getLogger(__name__)

# Layout of the translation folder produced by the extraction step
MAPS_SUBDIR = "maps"
OTHER_SUBDIR = "other"
PLUGINS_SUBDIR = "plugins"
TRANS_SUFFIX = "_trans"

SYSTEM_FILE = "System.json"
PLUGINS_OUTPUT_NAME = "plugins.js"


@dataclass
class WriterConfig:
    """Paths for one write run."""
    data_dir: str = ""          # Original (untranslated) data/ folder
    translation_dir: str = ""   # Folder holding maps/, other/ and plugins/
    output_dir: str = ""        # Where translated data files are written
    plugins_file: str = ""      # Original js/plugins.js; empty = skip plugins
    plugins_output: str = ""    # Defaults to <output_dir>/plugins.js
    heuristics_file: str = ""   # Defaults to the packaged heuristics.json

    @classmethod
    def load(cls, path: str, **overrides) -> "WriterConfig":
        """Read settings from a JSON file; non-empty *overrides* win.

        Relative paths in the file are resolved against its directory.
        """
        with open(path, "r", encoding="utf-8-sig") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise MalformedDocumentError(f"{path}: settings must be a JSON object")

        base = os.path.dirname(os.path.abspath(path))
        values = {}
        for fld in fields(cls):
            value = data.get(fld.name) or ""
            if not isinstance(value, str):
                raise MalformedDocumentError(
                    f"{path}: setting '{fld.name}' must be a string")
            if value and not os.path.isabs(value):
                value = os.path.join(base, value)
            values[fld.name] = value
        for key, value in overrides.items():
            if value:
                values[key] = value
        return cls(**values)

    def validate(self):
        missing = [name for name in ("data_dir", "translation_dir", "output_dir")
                   if not getattr(self, name)]
        if missing:
            raise ReinsertError(f"Missing required setting(s): {', '.join(missing)}")

    @property
    def plugins_output_path(self) -> str:
        return self.plugins_output or os.path.join(self.output_dir, PLUGINS_OUTPUT_NAME)


def _read_text(path: str) -> str:
    # utf-8-sig drops the BOM Windows editors put at the start of a file
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            return f.read()
    except FileNotFoundError:
        raise FileNotFoundError(f"Required input file not found: {path}") from None
    except UnicodeDecodeError as exc:
        raise MalformedDocumentError(f"{path}: not valid UTF-8 ({exc})") from exc


def load_index(original_path: str, translated_path: str,
               mode: str = MODE_EVENT_TEXT, dedupe: bool = False) -> TranslationIndex:
    """Build a TranslationIndex from an original/translated line file pair."""
    index = TranslationIndex.from_lines(
        split_lines(_read_text(original_path)),
        split_lines(_read_text(translated_path)),
        mode=mode, dedupe=dedupe,
        original_source=original_path, translated_source=translated_path,
    )
    log.info("Loaded %d translations from %s", len(index), original_path)
    return index


def load_pair(directory: str, stem: str, mode: str = MODE_EVENT_TEXT,
              dedupe: bool = False) -> TranslationIndex:
    """Load <stem>.txt / <stem>_trans.txt from *directory*."""
    return load_index(os.path.join(directory, f"{stem}.txt"),
                      os.path.join(directory, f"{stem}{TRANS_SUFFIX}.txt"),
                      mode=mode, dedupe=dedupe)


class WriteWorker(QObject):
    """Translates a whole project; reports progress through signals.

    run() executes synchronously in the caller's thread.
    """

    file_done = pyqtSignal(str)     # output filename
    finished = pyqtSignal(dict)     # summary: documents, replaced, missed
    error = pyqtSignal(str)         # fatal error message

    def __init__(self, config: WriterConfig, heuristics: Heuristics = None):
        super().__init__()
        self.config = config
        if heuristics is None:
            heuristics = Heuristics.load(config.heuristics_file or None)
        self.writer = RPGMakerMVWriter(heuristics)
        self._summary = {}

    def _load_json(self, path: str):
        try:
            return json.loads(_read_text(path))
        except json.JSONDecodeError as exc:
            raise MalformedDocumentError(f"{path}: {exc}") from exc

    def _finish(self, out_path: str, content: str) -> tuple:
        stats = self.writer.take_stats()
        name = os.path.basename(out_path)
        if stats["missed"]:
            log.debug("%s: %d replaced, %d without translation",
                      name, stats["replaced"], stats["missed"])
        self._summary["documents"] += 1
        self._summary["replaced"] += stats["replaced"]
        self._summary["missed"] += stats["missed"]
        return out_path, content

    def prepare(self) -> list:
        """Load and translate everything without writing.

        Returns:
            List of (output_path, file_content) tuples in write order.

        Raises:
            FileNotFoundError: a document or line file is missing.
            ReinsertError: a line pair is misaligned or a file is malformed.
        """
        cfg = self.config
        cfg.validate()
        self._summary = {"documents": 0, "replaced": 0, "missed": 0}
        writer = self.writer
        filenames = sorted(os.listdir(cfg.data_dir))
        outputs = []

        map_files = [fn for fn in filenames if writer.is_map_file(fn)]
        if map_files:
            maps_dir = os.path.join(cfg.translation_dir, MAPS_SUBDIR)
            maps_index = load_pair(maps_dir, "maps")
            names_index = load_pair(maps_dir, "names", mode=MODE_LABEL)
            for filename in map_files:
                data = self._load_json(os.path.join(cfg.data_dir, filename))
                writer.translate_map(data, maps_index, names_index)
                outputs.append(self._finish(os.path.join(cfg.output_dir, filename),
                                            writer.dump_json(data)))

        other_dir = os.path.join(cfg.translation_dir, OTHER_SUBDIR)
        for filename in filenames:
            if not writer.is_database_file(filename):
                continue
            stem = os.path.splitext(filename)[0]
            index = load_pair(other_dir, stem)
            data = self._load_json(os.path.join(cfg.data_dir, filename))
            writer.translate_database(filename, data, index)
            outputs.append(self._finish(os.path.join(cfg.output_dir, filename),
                                        writer.dump_json(data)))

        system = self._load_json(os.path.join(cfg.data_dir, SYSTEM_FILE))
        system_index = load_pair(other_dir, os.path.splitext(SYSTEM_FILE)[0],
                                 mode=MODE_RAW)
        writer.translate_system(system, system_index)
        outputs.append(self._finish(os.path.join(cfg.output_dir, SYSTEM_FILE),
                                    writer.dump_json(system)))

        if cfg.plugins_file:
            header, plugins = writer.load_plugins_js(_read_text(cfg.plugins_file))
            plugins_index = load_pair(os.path.join(cfg.translation_dir, PLUGINS_SUBDIR),
                                      "plugins", mode=MODE_RAW, dedupe=True)
            writer.translate_plugins(plugins, plugins_index)
            outputs.append(self._finish(cfg.plugins_output_path,
                                        writer.dump_plugins_js(plugins, header)))
        return outputs

    def run(self) -> bool:
        """Translate and write the project. Returns True on success."""
        try:
            outputs = self.prepare()
            for path, content in outputs:
                os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
                with open(path, "w", encoding="utf-8") as f:
                    f.write(content)
                log.info("Wrote %s", path)
                self.file_done.emit(os.path.basename(path))
        except (ReinsertError, OSError) as e:
            log.error("Write aborted: %s", e)
            self.error.emit(str(e))
            return False
        self.finished.emit(dict(self._summary))
        return True
