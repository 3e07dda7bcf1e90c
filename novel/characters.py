"""Character records, sprite tables and character definition files."""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, Iterable, Iterator, List, Mapping

import yaml

from .constants import CHARACTER_DEFINITION_FILES
from .errors import CharacterDefinitionError, SpriteLookupError

logger = logging.getLogger(__name__)

# outfit -> emotion -> opaque image handle supplied by the host
SpriteTable = Dict[str, Dict[str, Any]]
SpriteLookup = Callable[["CharacterRecord", str, str], Any]

REQUIRED_FIELDS = ("name", "default_outfit", "default_emotion", "description", "emotions")


@dataclass
class CharacterRecord:
    """Displayed state of a single character.

    ``current_emotion`` must always be one of ``allowed_emotions`` and resolve
    to a sprite under ``current_outfit``; :meth:`set_emotion` validates both
    before changing anything.
    """

    name: str
    current_outfit: str
    current_emotion: str
    description: str = ""
    allowed_emotions: FrozenSet[str] = frozenset()
    sprites: SpriteTable = field(default_factory=dict)
    current_sprite: Any = None

    def sprite_for(self, outfit: str, emotion: str) -> Any:
        """Return the sprite handle for ``outfit`` and ``emotion``."""

        outfit_sprites = self.sprites.get(outfit)
        if outfit_sprites is None:
            raise SpriteLookupError(self.name, outfit, emotion, "outfit does not exist")
        try:
            return outfit_sprites[emotion]
        except KeyError:
            raise SpriteLookupError(
                self.name, outfit, emotion, "emotion has no sprite in this outfit"
            ) from None

    def _resolve(self, outfit: str, emotion: str, lookup: SpriteLookup | None) -> Any:
        if emotion not in self.allowed_emotions:
            raise SpriteLookupError(
                self.name, outfit, emotion, "emotion is not allowed for this character"
            )
        if lookup is not None:
            return lookup(self, outfit, emotion)
        return self.sprite_for(outfit, emotion)

    def resolve_sprite(self, lookup: SpriteLookup | None = None) -> Any:
        """Re-resolve and store the sprite for the current outfit and emotion."""

        self.current_sprite = self._resolve(self.current_outfit, self.current_emotion, lookup)
        return self.current_sprite

    def set_emotion(self, emotion: str, lookup: SpriteLookup | None = None) -> Any:
        """Switch to ``emotion`` and return the newly displayed sprite handle."""

        sprite = self._resolve(self.current_outfit, emotion, lookup)
        self.current_emotion = emotion
        self.current_sprite = sprite
        return sprite

    def to_payload(self) -> dict:
        """Return a JSON-serialisable representation of the record."""

        return {
            "name": self.name,
            "outfit": self.current_outfit,
            "emotion": self.current_emotion,
            "description": self.description,
            "emotions": sorted(self.allowed_emotions),
            "sprite": None if self.current_sprite is None else str(self.current_sprite),
        }


class CharacterRegistry:
    """Ordered collection of characters addressed by name."""

    def __init__(self, characters: Iterable[CharacterRecord] = ()) -> None:
        self._characters: Dict[str, CharacterRecord] = {}
        for character in characters:
            self.add(character)

    def add(self, character: CharacterRecord) -> None:
        if character.name in self._characters:
            logger.warning("Replacing existing character %s", character.name)
        self._characters[character.name] = character

    def find(self, name: str) -> CharacterRecord | None:
        """Return the character called ``name`` if it is registered."""

        return self._characters.get(name)

    def names(self) -> List[str]:
        return list(self._characters)

    def __contains__(self, name: object) -> bool:
        return name in self._characters

    def __iter__(self) -> Iterator[CharacterRecord]:
        return iter(list(self._characters.values()))

    def __len__(self) -> int:
        return len(self._characters)

    def to_payload(self) -> List[dict]:
        return [character.to_payload() for character in self]


def parse_character_definition(payload: object, source: str = "") -> Dict[str, Any]:
    """Validate a character definition mapping and return normalised fields."""

    where = f" in {source}" if source else ""
    if not isinstance(payload, Mapping):
        raise CharacterDefinitionError(f"Character definition{where} must be a mapping")
    missing = [key for key in REQUIRED_FIELDS if key not in payload]
    if missing:
        raise CharacterDefinitionError(
            f"Missing '{missing[0]}' attribute{where}"
        )
    emotions = payload["emotions"]
    if not isinstance(emotions, list) or not emotions:
        raise CharacterDefinitionError(f"'emotions' must be a non-empty list{where}")
    definition = {
        "name": str(payload["name"]).strip(),
        "default_outfit": str(payload["default_outfit"]).strip(),
        "default_emotion": str(payload["default_emotion"]).strip(),
        "description": str(payload["description"] or "").strip(),
        "emotions": [str(entry).strip() for entry in emotions if str(entry).strip()],
    }
    for key in ("name", "default_outfit", "default_emotion"):
        if not definition[key]:
            raise CharacterDefinitionError(f"Empty '{key}' attribute{where}")
    if definition["default_emotion"] not in definition["emotions"]:
        raise CharacterDefinitionError(
            f"'default_emotion' {definition['default_emotion']!r} is not listed "
            f"in 'emotions'{where}"
        )
    return definition


def find_definition_file(directory: Path) -> Path | None:
    """Return the character definition file inside ``directory`` if present."""

    for filename in CHARACTER_DEFINITION_FILES:
        candidate = directory / filename
        if candidate.is_file():
            return candidate
    return None


def read_character_definition(path: Path) -> Dict[str, Any]:
    """Load and validate the YAML (or JSON) definition stored at ``path``."""

    try:
        with open(path, "r", encoding="utf-8") as fh:
            payload = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise CharacterDefinitionError(f"Malformed character file {path}: {exc}") from exc
    return parse_character_definition(payload, str(path))


def build_character(
    definition: Mapping[str, Any],
    sprites: SpriteTable,
    lookup: SpriteLookup | None = None,
) -> CharacterRecord:
    """Create a :class:`CharacterRecord` showing the default outfit and emotion."""

    record = CharacterRecord(
        name=definition["name"],
        current_outfit=definition["default_outfit"],
        current_emotion=definition["default_emotion"],
        description=definition.get("description", ""),
        allowed_emotions=frozenset(definition["emotions"]),
        sprites=sprites,
    )
    record.resolve_sprite(lookup)
    return record


__all__ = [
    "CharacterRecord",
    "CharacterRegistry",
    "REQUIRED_FIELDS",
    "SpriteLookup",
    "SpriteTable",
    "build_character",
    "find_definition_file",
    "parse_character_definition",
    "read_character_definition",
]
