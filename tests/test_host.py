from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from novel.config import NovelConfig
from novel.engine import ScriptEngine
from novel.errors import CharacterDefinitionError
from novel.host import (
    ConsoleHost,
    describe_frame,
    index_sprite_directory,
    load_character,
    load_characters,
    tick,
)
from novel.state import DialogueLine, PlaybackState


def _write_character(root: Path, name: str, outfits: dict, emotions=None) -> Path:
    directory = root / name
    directory.mkdir(parents=True)
    payload = {
        "name": name,
        "default_outfit": next(iter(outfits)),
        "default_emotion": "neutral",
        "description": f"{name} for tests",
        "emotions": emotions or ["neutral", "happy"],
    }
    (directory / "character.yaml").write_text(yaml.safe_dump(payload), encoding="utf-8")
    for outfit, files in outfits.items():
        (directory / outfit).mkdir()
        for filename in files:
            (directory / outfit / filename).write_bytes(b"")
    return directory


def test_index_sprite_directory_maps_outfits_and_emotions(tmp_path: Path) -> None:
    directory = _write_character(
        tmp_path,
        "Nayu",
        {"school": ["neutral.png", "happy.PNG", "notes.txt"], "casual": ["neutral.webp"]},
    )

    table = index_sprite_directory(directory, lambda path: path.name)

    assert table == {
        "casual": {"neutral": "neutral.webp"},
        "school": {"happy": "happy.PNG", "neutral": "neutral.png"},
    }


def test_index_sprite_directory_respects_extensions(tmp_path: Path) -> None:
    directory = _write_character(tmp_path, "Nayu", {"school": ["neutral.png", "happy.gif"]})

    table = index_sprite_directory(directory, lambda path: path.name, (".gif",))

    assert table == {"school": {"happy": "happy.gif"}}


def test_load_character_uses_host_loader(tmp_path: Path) -> None:
    directory = _write_character(tmp_path, "Nayu", {"school": ["neutral.png", "happy.png"]})
    loader = MagicMock(side_effect=lambda path: f"handle:{path.stem}")

    record = load_character(directory, loader)

    assert loader.call_count == 2
    assert record.current_sprite == "handle:neutral"
    assert record.sprites["school"]["happy"] == "handle:happy"


def test_load_character_defaults_to_paths(tmp_path: Path) -> None:
    directory = _write_character(tmp_path, "Nayu", {"school": ["neutral.png"]})

    record = load_character(directory)

    assert record.current_sprite == directory / "school" / "neutral.png"


def test_load_character_without_definition(tmp_path: Path) -> None:
    with pytest.raises(CharacterDefinitionError):
        load_character(tmp_path)


def test_load_characters_skips_folders_without_definition(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    _write_character(tmp_path, "Nayu", {"school": ["neutral.png"]})
    _write_character(tmp_path, "Aoi", {"casual": ["neutral.png"]})
    (tmp_path / "drafts").mkdir()
    (tmp_path / "README.txt").write_text("notes", encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="novel.host"):
        registry = load_characters(tmp_path)

    assert registry.names() == ["Aoi", "Nayu"]
    assert "drafts" in caplog.text


def test_load_characters_missing_root(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="novel.host"):
        registry = load_characters(tmp_path / "absent")

    assert len(registry) == 0
    assert "not found" in caplog.text


def test_load_characters_uses_configured_extensions(tmp_path: Path) -> None:
    _write_character(tmp_path, "Nayu", {"school": ["neutral.jpg", "happy.png"]})

    registry = load_characters(tmp_path, config=NovelConfig(sprite_extensions=(".jpg",)))

    assert set(registry.find("Nayu").sprites["school"]) == {"neutral"}


def test_load_characters_from_repository_assets() -> None:
    registry = load_characters(NovelConfig().characters_root)

    nayu = registry.find("Nayu")
    assert nayu is not None
    assert nayu.current_emotion == "neutral"
    assert set(nayu.sprites) == {"casual", "school"}


def test_describe_frame() -> None:
    state = PlaybackState(current_background="classroom")
    state.current_dialogue = DialogueLine("Nayu", "Hello")
    registry = load_characters(NovelConfig().characters_root)

    assert describe_frame(state, registry) == [
        "[ Background: classroom ]",
        "[ Nayu: school/neutral ]",
        "Nayu: Hello",
    ]
    assert describe_frame(PlaybackState(), registry)[0] == "[ Background: (none) ]"


def test_console_host_prints_only_changed_frames() -> None:
    output = MagicMock()
    host = ConsoleHost(output)
    engine = ScriptEngine(config=NovelConfig())
    engine.compile("bg background=`forest`")

    tick(engine, host)
    tick(engine, host)

    output.assert_called_once_with("[ Background: forest ]")


def test_tick_polls_then_renders() -> None:
    host = MagicMock()
    engine = ScriptEngine(config=NovelConfig())
    engine.compile("say character=`Nayu` msg=`Hi`")

    report = tick(engine, host)

    assert engine.status == "blocked"
    assert len(report.applied) == 1
    host.render_current_frame.assert_called_once_with(engine.state, engine.characters)
