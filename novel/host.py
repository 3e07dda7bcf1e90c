"""Host-side collaborators: sprite indexing, character loading and frames.

The engine treats images as opaque handles. Hosts decide what a handle is
(a path, a texture, a URL) through :meth:`HostCapabilities.load_image_handle`
and present the state through :meth:`HostCapabilities.render_current_frame`.
"""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Iterable, List, Protocol

from .characters import (
    CharacterRecord,
    CharacterRegistry,
    SpriteTable,
    build_character,
    find_definition_file,
    read_character_definition,
)
from .config import NovelConfig
from .constants import DEFAULT_SPRITE_EXTENSIONS
from .engine import PollReport, ScriptEngine
from .errors import CharacterDefinitionError
from .state import PlaybackState

logger = logging.getLogger(__name__)

ImageLoader = Callable[[Path], Any]


class HostCapabilities(Protocol):
    """Capabilities a host provides to the playback core."""

    def load_image_handle(self, path: Path) -> Any:
        ...

    def lookup_sprite(self, record: CharacterRecord, outfit: str, emotion: str) -> Any:
        ...

    def render_current_frame(
        self, state: PlaybackState, characters: CharacterRegistry
    ) -> None:
        ...


def index_sprite_directory(
    character_dir: Path,
    load_image_handle: ImageLoader,
    extensions: Iterable[str] = DEFAULT_SPRITE_EXTENSIONS,
) -> SpriteTable:
    """Return the outfit -> emotion -> handle table under ``character_dir``.

    Every sub-folder is an outfit; every image file inside it is an emotion
    named after the file stem.
    """

    allowed = {ext.lower() for ext in extensions}
    outfits: SpriteTable = {}
    for outfit_dir in sorted(p for p in Path(character_dir).iterdir() if p.is_dir()):
        emotion_sprites = {}
        for sprite_path in sorted(outfit_dir.iterdir()):
            if not sprite_path.is_file() or sprite_path.suffix.lower() not in allowed:
                continue
            emotion_sprites[sprite_path.stem] = load_image_handle(sprite_path)
            logger.debug(
                "Imported sprite '%s' for outfit '%s'", sprite_path.stem, outfit_dir.name
            )
        outfits[outfit_dir.name] = emotion_sprites
    return outfits


def load_character(
    character_dir: str | Path,
    load_image_handle: ImageLoader | None = None,
    *,
    extensions: Iterable[str] = DEFAULT_SPRITE_EXTENSIONS,
) -> CharacterRecord:
    """Load the character definition and sprites stored in ``character_dir``."""

    directory = Path(character_dir)
    definition_path = find_definition_file(directory)
    if definition_path is None:
        raise CharacterDefinitionError(f"No character definition found in {directory}")
    definition = read_character_definition(definition_path)
    loader = load_image_handle or Path
    sprites = index_sprite_directory(directory, loader, extensions)
    record = build_character(definition, sprites)
    logger.info(
        "Loaded character %s with %d outfit(s)", record.name, len(record.sprites)
    )
    return record


def load_characters(
    characters_root: str | Path,
    load_image_handle: ImageLoader | None = None,
    *,
    config: NovelConfig | None = None,
) -> CharacterRegistry:
    """Load every character folder under ``characters_root``."""

    extensions = config.sprite_extensions if config else DEFAULT_SPRITE_EXTENSIONS
    root = Path(characters_root)
    registry = CharacterRegistry()
    if not root.is_dir():
        logger.warning("Character directory %s not found; no characters loaded", root)
        return registry
    for name in sorted(os.listdir(root)):
        path = root / name
        if not path.is_dir():
            continue
        if find_definition_file(path) is None:
            logger.warning("Skipping %s without a character definition", path)
            continue
        registry.add(load_character(path, load_image_handle, extensions=extensions))
    return registry


def describe_frame(state: PlaybackState, characters: CharacterRegistry) -> List[str]:
    """Return the current frame as plain text lines."""

    lines = [f"[ Background: {state.current_background or '(none)'} ]"]
    for record in characters:
        lines.append(
            f"[ {record.name}: {record.current_outfit}/{record.current_emotion} ]"
        )
    if state.current_dialogue is not None:
        lines.append(
            f"{state.current_dialogue.character}: {state.current_dialogue.message}"
        )
    return lines


class ConsoleHost:
    """Host that uses sprite paths as handles and prints frames as text."""

    def __init__(self, output: Callable[[str], None] = print) -> None:
        self.output = output
        self._last_frame: List[str] | None = None

    def load_image_handle(self, path: Path) -> Path:
        return Path(path)

    def lookup_sprite(self, record: CharacterRecord, outfit: str, emotion: str) -> Any:
        return record.sprite_for(outfit, emotion)

    def render_current_frame(
        self, state: PlaybackState, characters: CharacterRegistry
    ) -> None:
        frame = describe_frame(state, characters)
        if frame == self._last_frame:
            return
        self._last_frame = frame
        for line in frame:
            self.output(line)


def tick(engine: ScriptEngine, host: HostCapabilities) -> PollReport:
    """Poll ``engine`` once and let ``host`` render the resulting frame."""

    report = engine.poll()
    host.render_current_frame(engine.state, engine.characters)
    return report


__all__ = [
    "ConsoleHost",
    "HostCapabilities",
    "ImageLoader",
    "describe_frame",
    "index_sprite_directory",
    "load_character",
    "load_characters",
    "tick",
]
