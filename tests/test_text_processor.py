import json

import pytest

from reinserter.text_processor import (
    Heuristics, LineClassifier, canonicalize_escapes, expand_newlines, split_lines,
)


@pytest.fixture
def classifier(heuristics):
    return LineClassifier(heuristics)


@pytest.mark.parametrize("text", [
    "HP_MAX",            # underscore
    "test--switch",      # double hyphen
    "Level 5",           # trailing digit
    "LegHURT",           # trailing uppercase run
    "DOOR A",            # uppercase run after whitespace
    "GameOver",          # denylisted name
    "Back from Mahabre",
    "RANDOM: pick one",  # denylisted prefix
    "// debug",
    "??? unused",
    "TALK to guard",
    "Empty scroll (3)",
])
def test_identifiers_are_useless(classifier, text):
    assert classifier.is_useless(text)


@pytest.mark.parametrize("text", [
    "Cursed",
    "Rusty knife",
    "A well-worn map",
    "Bandage",
])
def test_prose_is_not_useless(classifier, text):
    assert not classifier.is_useless(text)


def test_classifier_has_no_keep_overrides(classifier):
    # Override patterns are applied by callers, not by the classifier
    assert classifier.is_useless("Rifle_ammo")
    assert classifier.is_useless("Soldier's note 2")


def test_classifier_uses_given_tables():
    classifier = LineClassifier(Heuristics(useless_names=["Door"],
                                           useless_prefixes=["#"]))
    assert classifier.is_useless("Door")
    assert classifier.is_useless("#chest")
    assert not classifier.is_useless("GameOver")


def test_canonicalize_escapes_uppercases_name_reference():
    assert canonicalize_escapes("\\n[1] waves") == "\\N[1] waves"
    assert canonicalize_escapes("\\N[2]") == "\\N[2]"


def test_expand_newlines_keeps_name_references():
    assert expand_newlines("\\n[1]:\\nHello") == "\\N[1]:\nHello"


def test_split_lines_drops_final_newline_and_carriage_returns():
    assert split_lines("a\r\nb\r\n") == ["a", "b"]
    assert split_lines("a\nb") == ["a", "b"]
    assert split_lines("a\n\n") == ["a", ""]


def test_packaged_heuristics(heuristics):
    assert heuristics.version >= 1
    assert "GameOver" in heuristics.useless_names
    assert heuristics.variables_sentinel == "Panophobia"
    assert heuristics.plugin_placeholder_suffix == "????"
    assert "YEP_OptionsCore" in heuristics.text_plugins


def test_heuristics_load_ignores_unknown_keys(tmp_path):
    path = tmp_path / "h.json"
    path.write_text(json.dumps({"version": 9, "useless_names": ["X"], "extra": 1}),
                    encoding="utf-8")
    loaded = Heuristics.load(str(path))
    assert loaded.version == 9
    assert loaded.useless_names == ["X"]
    assert loaded.keep_prefixes == []
