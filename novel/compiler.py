"""Compile script text into an ordered list of transitions.

Each line compiles on its own into exactly one transition through the static
``COMMAND_BUILDERS`` table; ``set`` dispatches a second time on its ``type``
argument through ``SET_BUILDERS``. Compilation stops at the first bad line and
returns nothing for the script as a whole.
"""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, List

from .constants import COMMENT_PREFIX
from .errors import CompileError, UnknownCommand, UnknownSubtype
from .grammar import CommandInvocation, parse_line
from .logging_utils import DEFAULT_LOG_LINE_LIMIT, abbreviate_for_log
from .transitions import Background, End, Log, Say, SetEmotion, Transition

logger = logging.getLogger(__name__)

TransitionBuilder = Callable[[CommandInvocation], Transition]


def _build_log(invocation: CommandInvocation) -> Transition:
    return Log(message=invocation.require("msg"))


def _build_background(invocation: CommandInvocation) -> Transition:
    return Background(target_id=invocation.require("background"))


def _build_say(invocation: CommandInvocation) -> Transition:
    return Say(
        character_id=invocation.require("character"),
        message=invocation.require("msg"),
    )


def _build_set_emotion(invocation: CommandInvocation) -> Transition:
    return SetEmotion(
        character_id=invocation.require("character"),
        emotion_id=invocation.require("emotion"),
    )


SET_BUILDERS: Dict[str, TransitionBuilder] = {
    "emotion": _build_set_emotion,
}


def _build_set(invocation: CommandInvocation) -> Transition:
    subtype = invocation.require("type")
    builder = SET_BUILDERS.get(subtype)
    if builder is None:
        raise UnknownSubtype(invocation.command_id, subtype)
    return builder(invocation)


def _build_end(invocation: CommandInvocation) -> Transition:
    return End()


COMMAND_BUILDERS: Dict[str, TransitionBuilder] = {
    "log": _build_log,
    "bg": _build_background,
    "say": _build_say,
    "set": _build_set,
    "end": _build_end,
}


def split_lines(text: str) -> List[str]:
    """Split on line feeds only; other Unicode line breaks stay inside values."""

    return [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]


def is_skippable(line: str) -> bool:
    """Return ``True`` for blank lines and ``#`` comments."""

    stripped = line.strip()
    return not stripped or stripped.startswith(COMMENT_PREFIX)


def compile_line(line: str) -> Transition:
    """Compile a single script line into a transition."""

    invocation = parse_line(line)
    builder = COMMAND_BUILDERS.get(invocation.command_id)
    if builder is None:
        raise UnknownCommand(invocation.command_id)
    return builder(invocation)


def compile_script(
    text: str, *, log_line_limit: int = DEFAULT_LOG_LINE_LIMIT
) -> List[Transition]:
    """Compile every line of ``text`` in order.

    Raises the first :class:`CompileError` encountered, annotated with the
    1-based line number and the offending line.
    """

    transitions: List[Transition] = []
    for line_number, line in enumerate(split_lines(text), 1):
        if is_skippable(line):
            continue
        logger.debug("[ Compiling ] `%s`", abbreviate_for_log(line, log_line_limit))
        try:
            transition = compile_line(line)
        except CompileError as exc:
            exc.at(line_number, line)
            logger.error("Compilation failed: %s", exc)
            raise
        transitions.append(transition)
    logger.info("Completed compilation of %d transition(s)", len(transitions))
    return transitions


def compile_file(
    path: str | Path, *, log_line_limit: int = DEFAULT_LOG_LINE_LIMIT
) -> List[Transition]:
    """Read the UTF-8 script at ``path`` and compile it."""

    script_path = Path(path)
    logger.info("Compiling script %s", script_path)
    with open(script_path, "r", encoding="utf-8", newline="") as fh:
        text = fh.read()
    return compile_script(text, log_line_limit=log_line_limit)


__all__ = [
    "COMMAND_BUILDERS",
    "SET_BUILDERS",
    "TransitionBuilder",
    "compile_file",
    "compile_line",
    "compile_script",
    "is_skippable",
    "split_lines",
]
