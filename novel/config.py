"""Configuration loading utilities for script playback."""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Any, Dict, Sequence, Tuple

import yaml

from .constants import (
    DEFAULT_SPRITE_EXTENSIONS,
    LOOKUP_ERROR_POLICIES,
    UNKNOWN_CHARACTER_POLICIES,
)
from .logging_utils import DEFAULT_LOG_LINE_LIMIT

logger = logging.getLogger(__name__)

_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


@dataclass(frozen=True)
class NovelConfig:
    """Container for playback configuration values.

    Relative paths are resolved against ``base_dir``, which defaults to the
    directory holding the configuration file.
    """

    base_dir: str = _PROJECT_ROOT
    assets_dir: str = "assets"
    script_path: str = "scripts/script.txt"
    characters_dir: str = "characters"
    unknown_character_policy: str = "warn"
    lookup_error_policy: str = "skip"
    max_transitions_per_poll: int = 0
    sprite_extensions: Tuple[str, ...] = DEFAULT_SPRITE_EXTENSIONS
    log_line_limit: int = DEFAULT_LOG_LINE_LIMIT

    @property
    def assets_root(self) -> Path:
        """Return the absolute asset directory."""

        return Path(self.base_dir) / self.assets_dir

    @property
    def script_file(self) -> Path:
        """Return the absolute path of the configured script."""

        return self.assets_root / self.script_path

    @property
    def characters_root(self) -> Path:
        """Return the directory holding one folder per character."""

        return self.assets_root / self.characters_dir


_DEFAULT_CONFIG_PATH = os.path.join(_PROJECT_ROOT, "novel_config.yaml")


def _coerce_int(value: Any, fallback: int) -> int:
    """Return ``value`` coerced to ``int`` when possible."""

    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(
            "Invalid integer value %r encountered in configuration; using %d",
            value,
            fallback,
        )
        return fallback


def _coerce_choice(value: Any, choices: Sequence[str], fallback: str, field: str) -> str:
    """Return ``value`` lower-cased when it is one of ``choices``."""

    text = str(value if value is not None else fallback).strip().lower()
    if text in choices:
        return text
    logger.warning(
        "Invalid %s %r in configuration; expected one of %s, using %s",
        field,
        value,
        ", ".join(choices),
        fallback,
    )
    return fallback


def _coerce_extensions(value: Any) -> Tuple[str, ...]:
    """Return a tuple of dotted, lower-case file suffixes."""

    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        logger.warning(
            "Invalid sprite_extensions %r in configuration; using defaults", value
        )
        return DEFAULT_SPRITE_EXTENSIONS
    cleaned = []
    for item in value:
        text = str(item or "").strip().lower()
        if not text:
            continue
        cleaned.append(text if text.startswith(".") else f".{text}")
    return tuple(cleaned) or DEFAULT_SPRITE_EXTENSIONS


def load_novel_config(path: str | None = None) -> NovelConfig:
    """Load the playback configuration from ``path`` if available."""

    config_path = path or _DEFAULT_CONFIG_PATH
    base_dir = os.path.dirname(os.path.abspath(config_path))
    data: Dict[str, Any] = {}
    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            payload = yaml.safe_load(fh) or {}
    except FileNotFoundError:
        logger.warning(
            "Novel configuration file %s not found; falling back to defaults",
            config_path,
        )
        return NovelConfig()
    except yaml.YAMLError as exc:
        logger.warning(
            "Failed to parse novel configuration %s: %s; using defaults",
            config_path,
            exc,
        )
        return NovelConfig()
    if isinstance(payload, dict):
        if "novel" in payload and isinstance(payload["novel"], dict):
            data = payload["novel"]
        else:
            data = payload
    defaults = NovelConfig()
    assets_dir = str(data.get("assets_dir", defaults.assets_dir)).strip() or defaults.assets_dir
    script_path = (
        str(data.get("script_path", defaults.script_path)).strip() or defaults.script_path
    )
    characters_dir = (
        str(data.get("characters_dir", defaults.characters_dir)).strip()
        or defaults.characters_dir
    )
    unknown_policy = _coerce_choice(
        data.get("unknown_character_policy", defaults.unknown_character_policy),
        UNKNOWN_CHARACTER_POLICIES,
        defaults.unknown_character_policy,
        "unknown_character_policy",
    )
    lookup_policy = _coerce_choice(
        data.get("lookup_error_policy", defaults.lookup_error_policy),
        LOOKUP_ERROR_POLICIES,
        defaults.lookup_error_policy,
        "lookup_error_policy",
    )
    max_per_poll = _coerce_int(
        data.get("max_transitions_per_poll", defaults.max_transitions_per_poll),
        defaults.max_transitions_per_poll,
    )
    log_line_limit = _coerce_int(
        data.get("log_line_limit", defaults.log_line_limit), defaults.log_line_limit
    )
    extensions = _coerce_extensions(
        data.get("sprite_extensions", list(defaults.sprite_extensions))
    )
    return NovelConfig(
        base_dir=base_dir,
        assets_dir=assets_dir,
        script_path=script_path,
        characters_dir=characters_dir,
        unknown_character_policy=unknown_policy,
        lookup_error_policy=lookup_policy,
        max_transitions_per_poll=max(0, max_per_poll),
        sprite_extensions=extensions,
        log_line_limit=max(0, log_line_limit),
    )


__all__ = ["NovelConfig", "load_novel_config"]
