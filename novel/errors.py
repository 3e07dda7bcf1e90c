"""Exception hierarchy for script compilation and playback."""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations


class NovelError(Exception):
    """Base class for all errors raised by the novel package."""


class CompileError(NovelError):
    """A script line could not be turned into a transition.

    ``line_number`` is 1-based and ``line`` holds the raw source text. Both are
    ``None`` when the error was raised outside of a full script compile.
    """

    def __init__(
        self,
        detail: str,
        *,
        line_number: int | None = None,
        line: str | None = None,
    ) -> None:
        self.detail = detail
        self.line_number = line_number
        self.line = line
        super().__init__(self._format())

    def _format(self) -> str:
        if self.line_number is None:
            return self.detail
        return f"line {self.line_number}: {self.detail} (`{self.line}`)"

    def at(self, line_number: int, line: str) -> "CompileError":
        """Attach the source position and refresh the message."""

        self.line_number = line_number
        self.line = line
        self.args = (self._format(),)
        return self


class MalformedLine(CompileError):
    """The line has no command identifier or an unbalanced delimiter."""


class MissingArgument(CompileError):
    """A command is missing one of its required keys."""

    def __init__(self, command_id: str, key: str, **kwargs) -> None:
        self.command_id = command_id
        self.key = key
        super().__init__(
            f"command '{command_id}' is missing required argument '{key}'", **kwargs
        )


class UnknownCommand(CompileError):
    """The command identifier is not in the command table."""

    def __init__(self, command_id: str, **kwargs) -> None:
        self.command_id = command_id
        super().__init__(f"unknown command '{command_id}'", **kwargs)


class UnknownSubtype(CompileError):
    """A ``set`` command names a ``type`` that has no builder."""

    def __init__(self, command_id: str, subtype: str, **kwargs) -> None:
        self.command_id = command_id
        self.subtype = subtype
        super().__init__(
            f"command '{command_id}' has unknown type '{subtype}'", **kwargs
        )


class SpriteLookupError(NovelError, LookupError):
    """A character has no sprite for the requested outfit and emotion."""

    def __init__(self, character: str, outfit: str, emotion: str, reason: str = "") -> None:
        self.character = character
        self.outfit = outfit
        self.emotion = emotion
        message = (
            f"No sprite for character '{character}' "
            f"(outfit '{outfit}', emotion '{emotion}')"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UnknownCharacterError(NovelError, LookupError):
    """A transition targets a character the registry does not know."""

    def __init__(self, character: str) -> None:
        self.character = character
        super().__init__(f"Unknown character '{character}'")


class CharacterDefinitionError(NovelError, ValueError):
    """A character definition file is missing data or is malformed."""


class PlaybackError(NovelError, RuntimeError):
    """The engine was asked to do something its current status forbids."""


__all__ = [
    "CharacterDefinitionError",
    "CompileError",
    "MalformedLine",
    "MissingArgument",
    "NovelError",
    "PlaybackError",
    "SpriteLookupError",
    "UnknownCharacterError",
    "UnknownCommand",
    "UnknownSubtype",
]
