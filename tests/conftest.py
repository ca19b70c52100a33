import json
import os

import pytest

from reinserter.rpgmaker_mv import RPGMakerMVWriter
from reinserter.text_processor import Heuristics


def cmd(code, *params, indent=0):
    return {"code": code, "indent": indent, "parameters": list(params)}


def write_lines(path, lines):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")


def write_json(path, data):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False)


@pytest.fixture(scope="session")
def heuristics():
    return Heuristics.load()


@pytest.fixture
def writer(heuristics):
    return RPGMakerMVWriter(heuristics)


@pytest.fixture
def project(tmp_path):
    """A small game: one map, Items, CommonEvents, System and plugins.js."""
    data = tmp_path / "data"
    trans = tmp_path / "translation"

    write_json(str(data / "Map001.json"), {
        "displayName": "Prison",
        "events": [None, {
            "id": 1,
            "name": "EV001",
            "pages": [{"list": [
                cmd(101, "", 0, 0, 2),
                cmd(401, "Hi"),
                cmd(401, "there"),
                cmd(401, "friend"),
                cmd(102, ["Stay", "Leave"], 1, 0, 2, 0),
                cmd(402, 1, "Leave"),
                cmd(0),
            ]}],
        }],
    })
    write_json(str(data / "MapInfos.json"), [None, {"id": 1, "name": "MAP001"}])
    write_json(str(data / "Items.json"), [None, {
        "id": 1, "name": "Bandage", "description": "Stops bleeding.",
        "note": "<Menu Category: Healing>",
    }])
    write_json(str(data / "CommonEvents.json"), [None, {
        "id": 1, "name": "Intro", "list": [
            cmd(108, "The wind howls"),
            cmd(401, "Wake up."),
            cmd(0),
        ],
    }])
    write_json(str(data / "System.json"), {
        "gameTitle": "Termina",
        "equipTypes": ["", "Weapon"],
        "skillTypes": ["", "Magic"],
        "variables": ["", "Fear", "Panophobia", "Claustrophobia"],
        "terms": {"basic": ["Level"], "messages": {"victory": "%1 won!"}},
    })
    with open(data / "plugins.js", "w", encoding="utf-8") as f:
        f.write("// Generated by RPG Maker.\n// Do not edit this file directly.\n"
                "var $plugins =\n" + json.dumps([
                    {"name": "YEP_ItemCore", "status": True, "description": "",
                     "parameters": {"Items": "Items", "Weapons": "Weapons"}},
                ]) + ";\n")

    write_lines(str(trans / "maps" / "maps.txt"),
                ["Hi\\nthere\\nfriend", "Stay", "Leave"])
    write_lines(str(trans / "maps" / "maps_trans.txt"),
                ["Bonjour\\nla\\namie", "Rester", "Partir"])
    write_lines(str(trans / "maps" / "names.txt"), ["Prison"])
    write_lines(str(trans / "maps" / "names_trans.txt"), ["Prison FR"])
    write_lines(str(trans / "other" / "Items.txt"),
                ["Bandage", "Stops bleeding.", "<Menu Category: Healing>"])
    write_lines(str(trans / "other" / "Items_trans.txt"),
                ["Bandage FR", "Arrete le saignement.", "<Menu Category: Soins>"])
    write_lines(str(trans / "other" / "CommonEvents.txt"),
                ["Intro", "The wind howls", "Wake up."])
    write_lines(str(trans / "other" / "CommonEvents_trans.txt"),
                ["Introduction", "Le vent hurle", "Reveille-toi."])
    write_lines(str(trans / "other" / "System.txt"),
                ["Termina", "Weapon", "Fear", "Panophobia", "Claustrophobia"])
    write_lines(str(trans / "other" / "System_trans.txt"),
                ["Termina FR", "Arme", "Peur", "Peur de tout", "Claustrophobie"])
    write_lines(str(trans / "plugins" / "plugins.txt"), ["Items", "Weapons", "Items"])
    write_lines(str(trans / "plugins" / "plugins_trans.txt"), ["Objets", "Armes", "Trucs"])
    return tmp_path
