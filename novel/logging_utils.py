"""Helpers for shortening verbose script text in debug logging output."""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import os
import re
from functools import lru_cache

DEFAULT_LOG_LINE_LIMIT = 80

_WHITESPACE_RUN = re.compile(r"\s+")


@lru_cache(maxsize=1)
def full_lines_enabled() -> bool:
    """Return ``True`` when script lines should be logged without shortening."""

    value = os.environ.get("VN_FULL_LINES_IN_DEBUG_LOGS", "0")
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _abbreviate(text: str, limit: int) -> str:
    """Collapse whitespace in ``text`` and cut it to ``limit`` characters."""

    compact = _WHITESPACE_RUN.sub(" ", text).strip()
    if limit <= 0 or len(compact) <= limit:
        return compact
    if limit == 1:
        return "…"
    return compact[: limit - 1] + "…"


def abbreviate_for_log(text: str, limit: int = DEFAULT_LOG_LINE_LIMIT) -> str:
    """Return ``text`` shortened for log output unless disabled by environment."""

    if full_lines_enabled():
        return text
    return _abbreviate(text, limit)


__all__ = ["DEFAULT_LOG_LINE_LIMIT", "abbreviate_for_log", "full_lines_enabled"]
