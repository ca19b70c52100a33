"""RPG Maker MV/MZ JSON writer.

Merges multi-line dialogue blocks and writes translations back into the
original JSON structure of maps, database files, System.json and
plugins.js. Nothing here touches the filesystem; see translation_engine
for loading and saving.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

from .project_model import MalformedDocumentError, TranslationIndex
from .text_processor import Heuristics, LineClassifier

log = logging.getLogger(__name__)

# RPG Maker event command codes that carry translatable text
CODE_SHOW_CHOICES = 102       # Show Choices: params[0] is a list of labels
CODE_COMMENT = 108            # Comment: params[0] is free text (cut-scene scripts)
CODE_CHANGE_NICKNAME = 324    # Change Actor Nickname: params[1] is the nickname
CODE_PLUGIN_COMMAND_MV = 356  # Plugin Command (MV): params[0] is the command string
CODE_SHOW_TEXT = 401          # Show Text line: params[0] is text
CODE_WHEN_CHOICE = 402        # When [choice]: params[1] is the choice label
CODE_SCROLL_TEXT = 405        # Scroll Text line (credits): params[0] is text

# Codes whose consecutive lines are merged into one block
DIALOGUE_CODES = (CODE_SHOW_TEXT, CODE_SCROLL_TEXT)

SHAPE_TEXT = "text"        # every string parameter is a candidate
SHAPE_CHOICES = "choices"  # every string inside list parameters is a candidate


@dataclass(frozen=True)
class CommandRule:
    """How the parameters of one command code are substituted."""
    shape: str
    guarded: bool = False  # only plugin commands tagged as text qualify


COMMAND_RULES = {
    CODE_SHOW_TEXT: CommandRule(SHAPE_TEXT),
    CODE_SCROLL_TEXT: CommandRule(SHAPE_TEXT),
    CODE_WHEN_CHOICE: CommandRule(SHAPE_TEXT),
    CODE_CHANGE_NICKNAME: CommandRule(SHAPE_TEXT),
    CODE_COMMENT: CommandRule(SHAPE_TEXT),
    CODE_PLUGIN_COMMAND_MV: CommandRule(SHAPE_TEXT, guarded=True),
    CODE_SHOW_CHOICES: CommandRule(SHAPE_CHOICES),
}

# Map events use 324 for in-game lines; common events and troops use
# comments for cut-scene text instead.
MAP_CODES = frozenset({CODE_SHOW_TEXT, CODE_SCROLL_TEXT, CODE_WHEN_CHOICE,
                       CODE_CHANGE_NICKNAME, CODE_PLUGIN_COMMAND_MV,
                       CODE_SHOW_CHOICES})
EVENT_CODES = frozenset({CODE_SHOW_TEXT, CODE_SCROLL_TEXT, CODE_WHEN_CHOICE,
                         CODE_COMMENT, CODE_PLUGIN_COMMAND_MV,
                         CODE_SHOW_CHOICES})

# Database fields written back from the per-file line pair
ENTRY_TEXT_FIELDS = ("name", "nickname", "description", "note")

MAP_FILE_RE = re.compile(r'^Map\d+\.json$', re.IGNORECASE)
# Data files with no text, or handled separately (System.json)
SKIPPED_FILE_PREFIXES = ("Map", "Tilesets", "Animations", "States", "System")

OPTIONS_CORE_PLUGIN = "YEP_OptionsCore"
OPTIONS_CATEGORIES_KEY = "OptionsCategories"

_PLUGINS_ASSIGN_RE = re.compile(r'var\s+\$plugins\s*=\s*(\[.*\])\s*;?\s*$',
                                re.DOTALL)


# ── Text block normalizer ─────────────────────────────────────────

def _dialogue_code(cmd) -> Optional[int]:
    """Return the dialogue code of *cmd* if it is a mergeable text line."""
    if not isinstance(cmd, dict):
        return None
    code = cmd.get("code")
    if code not in DIALOGUE_CODES:
        return None
    params = cmd.get("parameters")
    if not isinstance(params, list) or not params or not isinstance(params[0], str):
        return None
    return code


def merge_text_runs(cmd_list: list) -> list:
    """Merge each run of consecutive 401 (or 405) lines into its first command.

    The first command's text becomes the newline-join of the run; the
    other commands of the run are dropped. The list is updated in place
    and returned. Run this once per list: the extracted line files index
    merged blocks, so lookups only match after exactly one merge.
    """
    merged = []
    run_code = None
    for cmd in cmd_list:
        code = _dialogue_code(cmd)
        if code is not None and code == run_code:
            head = merged[-1]["parameters"]
            head[0] = head[0] + "\n" + cmd["parameters"][0]
            continue
        merged.append(cmd)
        run_code = code
    cmd_list[:] = merged
    return cmd_list


def merge_map_events(data: dict) -> dict:
    """Merge text runs in every page of every event of a Map###.json."""
    for event in data.get("events") or []:
        if not isinstance(event, dict):
            continue
        for page in event.get("pages") or []:
            if isinstance(page, dict) and isinstance(page.get("list"), list):
                merge_text_runs(page["list"])
    return data


def merge_event_lists(data: list) -> list:
    """Merge text runs in CommonEvents (list) and Troops (pages) entries."""
    for entry in data:
        if not isinstance(entry, dict):
            continue
        pages = entry.get("pages")
        if isinstance(pages, list):
            for page in pages:
                if isinstance(page, dict) and isinstance(page.get("list"), list):
                    merge_text_runs(page["list"])
        elif isinstance(entry.get("list"), list):
            merge_text_runs(entry["list"])
    return data


# ── Writer ────────────────────────────────────────────────────────

class RPGMakerMVWriter:
    """Writes translations into RPG Maker MV/MZ documents.

    One instance can process any number of documents; ``stats`` counts
    replaced and missed lookups since the last take_stats() call.
    """

    def __init__(self, heuristics: Heuristics = None):
        self.heuristics = heuristics or Heuristics.load()
        self.classifier = LineClassifier(self.heuristics)
        self._plugin_prefixes = tuple(self.heuristics.plugin_text_prefixes)
        self._keep_suffixes = tuple(self.heuristics.keep_suffixes)
        self._keep_prefixes = tuple(self.heuristics.keep_prefixes)
        self._text_plugins = frozenset(self.heuristics.text_plugins)
        self.stats = {"replaced": 0, "missed": 0}

    def take_stats(self) -> dict:
        """Return the counters and start a fresh count."""
        stats, self.stats = self.stats, {"replaced": 0, "missed": 0}
        return stats

    # ── Private: lookups ──────────────────────────────────────────

    def _substitute(self, text: str, index: TranslationIndex) -> Optional[str]:
        translated = index.lookup(text)
        if translated is None:
            self.stats["missed"] += 1
        else:
            self.stats["replaced"] += 1
        return translated

    def _is_text_plugin_command(self, text: str) -> bool:
        """356 is used for both gab/choice text and engine calls."""
        if not text.startswith(self._plugin_prefixes):
            return False
        suffix = self.heuristics.plugin_placeholder_suffix
        return not (suffix and text.endswith(suffix))

    def _is_label_eligible(self, text: str) -> bool:
        """Classifier verdict, overridden for known prose patterns."""
        if not self.classifier.is_useless(text):
            return True
        return text.endswith(self._keep_suffixes) or text.startswith(self._keep_prefixes)

    def _translate_array(self, values, index: TranslationIndex):
        if not isinstance(values, list):
            return
        for i, value in enumerate(values):
            if isinstance(value, str) and value:
                translated = self._substitute(value, index)
                if translated is not None:
                    values[i] = translated

    # ── Event commands ────────────────────────────────────────────

    def translate_command(self, cmd, index: TranslationIndex,
                          codes=MAP_CODES):
        """Substitute the eligible parameters of one command in place."""
        if not isinstance(cmd, dict):
            return
        code = cmd.get("code")
        if code not in codes:
            return
        rule = COMMAND_RULES.get(code)
        params = cmd.get("parameters")
        if rule is None or not isinstance(params, list):
            return

        for i, value in enumerate(params):
            if rule.shape == SHAPE_TEXT and isinstance(value, str):
                if rule.guarded and not self._is_text_plugin_command(value):
                    continue
                translated = self._substitute(value, index)
                if translated is not None:
                    params[i] = translated
            elif rule.shape == SHAPE_CHOICES and isinstance(value, list):
                self._translate_array(value, index)

    def translate_command_list(self, cmd_list, index: TranslationIndex,
                               codes=MAP_CODES):
        if not isinstance(cmd_list, list):
            return
        for cmd in cmd_list:
            self.translate_command(cmd, index, codes)

    # ── Document adapters ─────────────────────────────────────────

    def translate_map(self, data: dict, index: TranslationIndex,
                      names_index: TranslationIndex = None) -> dict:
        """Translate a Map###.json: display name plus every event page.

        Dialogue runs are merged first, so the document comes back with
        one 401 per text block.
        """
        if not isinstance(data, dict):
            raise MalformedDocumentError("map data must be a JSON object")
        merge_map_events(data)

        display_name = data.get("displayName")
        if names_index is not None and isinstance(display_name, str) and display_name:
            translated = self._substitute(display_name.strip(), names_index)
            if translated is not None:
                data["displayName"] = translated

        for event in data.get("events") or []:
            if not isinstance(event, dict):
                continue
            for page in event.get("pages") or []:
                if isinstance(page, dict):
                    self.translate_command_list(page.get("list"), index, MAP_CODES)
        return data

    def translate_database(self, filename: str, data: list,
                           index: TranslationIndex) -> list:
        """Translate a database file (Actors, Items, ..., CommonEvents, Troops).

        Entries with pages (troops) or a command list (common events) get
        their commands translated; plain entries get their text fields.
        """
        if not isinstance(data, list):
            raise MalformedDocumentError(f"{filename}: expected a JSON array")
        merge_event_lists(data)
        is_items = filename.startswith("Items")

        for entry in data:
            if not isinstance(entry, dict):
                continue
            pages = entry.get("pages")
            if isinstance(pages, list):
                for page in pages:
                    if isinstance(page, dict):
                        self.translate_command_list(page.get("list"), index, EVENT_CODES)
            elif isinstance(entry.get("list"), list):
                name = entry.get("name")
                if isinstance(name, str) and name and not self.classifier.is_useless(name):
                    translated = self._substitute(name, index)
                    if translated is not None:
                        entry["name"] = translated
                self.translate_command_list(entry["list"], index, EVENT_CODES)
            else:
                self._translate_entry_fields(entry, index, is_items)
        return data

    def _translate_entry_fields(self, entry: dict, index: TranslationIndex,
                                is_items: bool):
        for key in ENTRY_TEXT_FIELDS:
            value = entry.get(key)
            if not isinstance(value, str) or not value:
                continue
            if key == "note":
                if is_items:
                    tagged = self._translate_note_tags(value, index)
                    if tagged is not None:
                        entry[key] = tagged
                        continue
            elif not self._is_label_eligible(value):
                continue
            translated = self._substitute(value, index)
            if translated is not None:
                entry[key] = translated

    def _translate_note_tags(self, note: str, index: TranslationIndex) -> Optional[str]:
        """Replace the first known <Menu Category: ...> tag inside an item note.

        Returns None when no tag was replaced.
        """
        for tag in self.heuristics.note_menu_categories:
            if tag not in note:
                continue
            translated = index.lookup(tag)
            if translated is not None:
                self.stats["replaced"] += 1
                return note.replace(tag, translated, 1)
        return None

    def translate_system(self, data: dict, index: TranslationIndex) -> dict:
        """Translate type names, variable names, terms and the game title."""
        if not isinstance(data, dict):
            raise MalformedDocumentError("System.json must be a JSON object")

        for section in ("armorTypes", "elements", "equipTypes",
                        "skillTypes", "weaponTypes"):
            self._translate_array(data.get(section), index)

        variables = data.get("variables")
        if isinstance(variables, list):
            sentinel = self.heuristics.variables_sentinel
            for i, value in enumerate(variables):
                if not isinstance(value, str) or not value:
                    continue
                translated = self._substitute(value, index)
                if translated is not None:
                    variables[i] = translated
                # Variables past the sentinel are internal switches
                if sentinel and value == sentinel:
                    break

        terms = data.get("terms")
        if isinstance(terms, dict):
            for key, section in terms.items():
                if key == "messages" and isinstance(section, dict):
                    for msg_key, value in section.items():
                        if isinstance(value, str) and value:
                            translated = self._substitute(value, index)
                            if translated is not None:
                                section[msg_key] = translated
                else:
                    self._translate_array(section, index)

        title = data.get("gameTitle")
        if isinstance(title, str) and title:
            translated = self._substitute(title, index)
            if translated is not None:
                data["gameTitle"] = translated
        return data

    def translate_plugins(self, plugins: list, index: TranslationIndex) -> list:
        """Translate the parameters of the known text-bearing plugins.

        *index* should be built with dedupe=True: the same value appears in
        several plugins and must keep its first translation.
        """
        if not isinstance(plugins, list):
            raise MalformedDocumentError("plugins.js: $plugins must be an array")
        for plugin in plugins:
            if not isinstance(plugin, dict):
                continue
            name = plugin.get("name")
            params = plugin.get("parameters")
            if name not in self._text_plugins or not isinstance(params, dict):
                continue
            log.debug("plugins.js: translating parameters of %s", name)
            for key, value in params.items():
                if not isinstance(value, str):
                    continue
                if name == OPTIONS_CORE_PLUGIN and key == OPTIONS_CATEGORIES_KEY:
                    # Serialized option list, not a single label
                    params[key] = self._replace_fragments(value, index)
                    continue
                translated = self._substitute(value, index)
                if translated is not None:
                    params[key] = translated
        return plugins

    @staticmethod
    def _replace_fragments(text: str, index: TranslationIndex) -> str:
        for original, translation in index.items():
            if original and original in text:
                text = text.replace(original, translation, 1)
        return text

    # ── File classification & serialization ──────────────────────

    @staticmethod
    def is_map_file(filename: str) -> bool:
        return bool(MAP_FILE_RE.match(filename))

    @staticmethod
    def is_database_file(filename: str) -> bool:
        """True for data files translated through their own line pair."""
        return (filename.lower().endswith(".json")
                and not filename.startswith(SKIPPED_FILE_PREFIXES))

    @staticmethod
    def dump_json(data) -> str:
        return json.dumps(data, ensure_ascii=False, indent=2)

    @staticmethod
    def load_plugins_js(content: str) -> tuple:
        """Parse plugins.js into (header, plugin list).

        The header is whatever precedes the ``var $plugins =`` assignment
        (RPG Maker writes two comment lines there) and is kept verbatim.
        """
        m = _PLUGINS_ASSIGN_RE.search(content)
        if not m:
            raise MalformedDocumentError(
                "plugins.js: no 'var $plugins = [...]' assignment found")
        try:
            plugins = json.loads(m.group(1))
        except json.JSONDecodeError as exc:
            raise MalformedDocumentError(f"plugins.js: {exc}") from exc
        return content[:m.start()], plugins

    @staticmethod
    def dump_plugins_js(plugins: list, header: str = "") -> str:
        """Write plugin list back to plugins.js format."""
        json_str = json.dumps(plugins, ensure_ascii=False, indent=2)
        return f"{header}var $plugins =\n{json_str};\n"
