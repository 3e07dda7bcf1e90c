"""Common constants used throughout the novel package."""

# SPDX-License-Identifier: GPL-3.0-or-later

ARGUMENT_DELIMITER = "`"
COMMENT_PREFIX = "#"

UNKNOWN_CHARACTER_POLICIES = ("warn", "ignore", "error")
LOOKUP_ERROR_POLICIES = ("skip", "raise")

CHARACTER_DEFINITION_FILES = ("character.yaml", "character.yml", "character.json")
DEFAULT_SPRITE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp")

__all__ = [
    "ARGUMENT_DELIMITER",
    "CHARACTER_DEFINITION_FILES",
    "COMMENT_PREFIX",
    "DEFAULT_SPRITE_EXTENSIONS",
    "LOOKUP_ERROR_POLICIES",
    "UNKNOWN_CHARACTER_POLICIES",
]
