"""Compiled script instructions and the state changes they perform."""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Mapping, Type

from .characters import CharacterRegistry, SpriteLookup
from .config import NovelConfig
from .errors import UnknownCharacterError
from .grammar import format_line
from .state import DialogueLine, PlaybackState

logger = logging.getLogger(__name__)


@dataclass
class ApplyContext:
    """Everything a transition may read or write while it is applied."""

    state: PlaybackState
    characters: CharacterRegistry
    config: NovelConfig = field(default_factory=NovelConfig)
    lookup_sprite: SpriteLookup | None = None


class Transition(ABC):
    """Base class of every compiled instruction.

    Subclasses are frozen dataclasses. ``kind`` names the variant in payloads
    and ``command_id`` is the script command that produces it.
    """

    kind: ClassVar[str]
    command_id: ClassVar[str]

    @abstractmethod
    def apply(self, context: ApplyContext) -> None:
        """Perform this instruction against ``context``."""

    @abstractmethod
    def arguments(self) -> Dict[str, str]:
        """Return the script arguments that compile back into this transition."""

    def to_line(self) -> str:
        """Return the transition in script syntax."""

        return format_line(self.command_id, self.arguments())

    def to_payload(self) -> dict:
        """Return a JSON-serialisable representation with a ``type`` key."""

        payload: Dict[str, Any] = {"type": self.kind}
        payload.update(self.__dict__)
        return payload


@dataclass(frozen=True)
class Background(Transition):
    """Switch the active background."""

    target_id: str

    kind: ClassVar[str] = "background"
    command_id: ClassVar[str] = "bg"

    def apply(self, context: ApplyContext) -> None:
        context.state.current_background = self.target_id
        logger.info("Set current background to '%s'", self.target_id)

    def arguments(self) -> Dict[str, str]:
        return {"background": self.target_id}


@dataclass(frozen=True)
class Say(Transition):
    """Present a line of dialogue and wait for the reader to dismiss it."""

    character_id: str
    message: str

    kind: ClassVar[str] = "say"
    command_id: ClassVar[str] = "say"

    def apply(self, context: ApplyContext) -> None:
        context.state.current_dialogue = DialogueLine(self.character_id, self.message)
        context.state.blocking = True
        logger.info("%s says: %s", self.character_id, self.message)

    def arguments(self) -> Dict[str, str]:
        return {"character": self.character_id, "msg": self.message}


@dataclass(frozen=True)
class SetEmotion(Transition):
    """Change the emotion, and therefore the sprite, of a character."""

    character_id: str
    emotion_id: str

    kind: ClassVar[str] = "set_emotion"
    command_id: ClassVar[str] = "set"

    def apply(self, context: ApplyContext) -> None:
        character = context.characters.find(self.character_id)
        if character is None:
            policy = context.config.unknown_character_policy
            if policy == "error":
                raise UnknownCharacterError(self.character_id)
            if policy == "warn":
                logger.warning(
                    "Ignoring emotion '%s' for unknown character '%s'",
                    self.emotion_id,
                    self.character_id,
                )
            return
        character.set_emotion(self.emotion_id, context.lookup_sprite)
        logger.info("Set emotion of '%s' to '%s'", self.character_id, self.emotion_id)

    def arguments(self) -> Dict[str, str]:
        return {
            "type": "emotion",
            "character": self.character_id,
            "emotion": self.emotion_id,
        }


@dataclass(frozen=True)
class Log(Transition):
    """Emit a diagnostic message."""

    message: str

    kind: ClassVar[str] = "log"
    command_id: ClassVar[str] = "log"

    def apply(self, context: ApplyContext) -> None:
        logger.info("%s", self.message)

    def arguments(self) -> Dict[str, str]:
        return {"msg": self.message}


@dataclass(frozen=True)
class End(Transition):
    """Stop playback for good, even if transitions remain."""

    kind: ClassVar[str] = "end"
    command_id: ClassVar[str] = "end"

    def apply(self, context: ApplyContext) -> None:
        context.state.status = "ended"
        context.state.end_reason = "end"
        logger.info("Reached end of script")

    def arguments(self) -> Dict[str, str]:
        return {}


TRANSITION_TYPES: Dict[str, Type[Transition]] = {
    cls.kind: cls for cls in (Background, Say, SetEmotion, Log, End)
}


def transition_from_payload(data: Mapping[str, Any]) -> Transition:
    """Rebuild a transition from the output of :meth:`Transition.to_payload`."""

    kind = data.get("type")
    cls = TRANSITION_TYPES.get(str(kind))
    if cls is None:
        raise ValueError(f"Unknown transition type: {kind!r}")
    fields = {key: str(value) for key, value in data.items() if key != "type"}
    try:
        return cls(**fields)
    except TypeError as exc:
        raise ValueError(f"Invalid fields for transition type {kind!r}: {exc}") from exc


__all__ = [
    "ApplyContext",
    "Background",
    "End",
    "Log",
    "Say",
    "SetEmotion",
    "TRANSITION_TYPES",
    "Transition",
    "transition_from_payload",
]
