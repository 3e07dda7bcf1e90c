"""Textual grammar of a single script line.

A line is a command word optionally followed by ``key=`value``` pairs::

    say character=`Nayu` msg=`Good morning!`

Values are delimited by backticks and cannot contain a backtick themselves;
there is no escape sequence. A stray backtick left over after every complete
pair has been extracted makes the line malformed rather than truncating the
value silently.
"""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict

from .constants import ARGUMENT_DELIMITER
from .errors import MalformedLine, MissingArgument

logger = logging.getLogger(__name__)

_COMMAND_PATTERN = re.compile(r"(\w+)(?:\s|$)")
_ARGUMENT_PATTERN = re.compile(
    r"(\w+)={d}([^{d}]*){d}".format(d=re.escape(ARGUMENT_DELIMITER))
)


@dataclass(frozen=True)
class CommandInvocation:
    """Command identifier plus its named string arguments."""

    command_id: str
    arguments: Dict[str, str] = field(default_factory=dict)

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the value for ``key`` or ``default`` when absent."""

        return self.arguments.get(key, default)

    def require(self, key: str) -> str:
        """Return the value for ``key`` or raise :class:`MissingArgument`."""

        try:
            return self.arguments[key]
        except KeyError:
            raise MissingArgument(self.command_id, key) from None


def parse_arguments(line: str) -> Dict[str, str]:
    """Return every ``key=`value``` pair found in ``line``.

    A repeated key keeps its last value.
    """

    arguments: Dict[str, str] = {}
    for match in _ARGUMENT_PATTERN.finditer(line):
        key, value = match.group(1), match.group(2)
        if key in arguments:
            logger.warning(
                "Argument '%s' repeated; keeping last value %r", key, value
            )
        arguments[key] = value
    remainder = _ARGUMENT_PATTERN.sub(" ", line)
    if ARGUMENT_DELIMITER in remainder:
        raise MalformedLine(
            f"unbalanced or embedded {ARGUMENT_DELIMITER} delimiter; "
            "argument values cannot contain it"
        )
    return arguments


def parse_command_id(line: str) -> str:
    """Return the first bare word of ``line`` outside of any argument pair."""

    match = _COMMAND_PATTERN.search(_ARGUMENT_PATTERN.sub(" ", line))
    if match is None:
        raise MalformedLine("no command identifier found")
    return match.group(1)


def parse_line(line: str) -> CommandInvocation:
    """Split ``line`` into a :class:`CommandInvocation`."""

    command_id = parse_command_id(line)
    arguments = parse_arguments(line)
    return CommandInvocation(command_id=command_id, arguments=arguments)


def format_argument(key: str, value: str) -> str:
    """Return ``key=`value``` in script syntax."""

    if ARGUMENT_DELIMITER in value:
        raise ValueError(
            f"Argument '{key}' cannot contain the {ARGUMENT_DELIMITER} delimiter"
        )
    return f"{key}={ARGUMENT_DELIMITER}{value}{ARGUMENT_DELIMITER}"


def format_line(command_id: str, arguments: Dict[str, str] | None = None) -> str:
    """Return a script line for ``command_id`` with ``arguments`` in order."""

    parts = [command_id]
    for key, value in (arguments or {}).items():
        parts.append(format_argument(key, value))
    return " ".join(parts)


__all__ = [
    "CommandInvocation",
    "format_argument",
    "format_line",
    "parse_arguments",
    "parse_command_id",
    "parse_line",
]
