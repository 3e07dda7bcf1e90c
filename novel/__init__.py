"""Line-based visual novel script compiler and playback engine."""

# SPDX-License-Identifier: GPL-3.0-or-later

from .characters import CharacterRecord, CharacterRegistry
from .compiler import compile_file, compile_line, compile_script
from .config import NovelConfig, load_novel_config
from .engine import PollReport, ScriptEngine
from .errors import (
    CharacterDefinitionError,
    CompileError,
    MalformedLine,
    MissingArgument,
    NovelError,
    PlaybackError,
    SpriteLookupError,
    UnknownCharacterError,
    UnknownCommand,
    UnknownSubtype,
)
from .grammar import CommandInvocation, parse_line
from .state import DialogueLine, PlaybackState
from .transitions import Background, End, Log, Say, SetEmotion, Transition

__all__ = [
    "Background",
    "CharacterDefinitionError",
    "CharacterRecord",
    "CharacterRegistry",
    "CommandInvocation",
    "CompileError",
    "DialogueLine",
    "End",
    "Log",
    "MalformedLine",
    "MissingArgument",
    "NovelConfig",
    "NovelError",
    "PlaybackError",
    "PlaybackState",
    "PollReport",
    "Say",
    "ScriptEngine",
    "SetEmotion",
    "SpriteLookupError",
    "Transition",
    "UnknownCharacterError",
    "UnknownCommand",
    "UnknownSubtype",
    "compile_file",
    "compile_line",
    "compile_script",
    "load_novel_config",
    "parse_line",
]
