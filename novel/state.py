"""Playback state observed by hosts and mutated by transitions."""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Literal

if TYPE_CHECKING:  # pragma: no cover
    from .transitions import Transition


EngineStatus = Literal["idle", "running", "blocked", "ended", "exhausted"]
EndReason = Literal["end", "exhausted"]

FINISHED_STATUSES = ("ended", "exhausted")


@dataclass(frozen=True)
class DialogueLine:
    """Dialogue currently presented to the reader."""

    character: str
    message: str

    def to_payload(self) -> dict:
        return {"character": self.character, "message": self.message}


@dataclass
class PlaybackState:
    """Compiled sequence, cursor and the presentation facts derived from it.

    ``history`` is the ordered log of transitions that were applied; it lets
    hosts and tests observe execution order without hooking into the engine.
    """

    transitions: List["Transition"] = field(default_factory=list)
    cursor: int = 0
    blocking: bool = False
    current_background: str = ""
    current_dialogue: DialogueLine | None = None
    status: EngineStatus = "idle"
    end_reason: EndReason | None = None
    history: List["Transition"] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        """Number of transitions not yet consumed."""

        return max(0, len(self.transitions) - self.cursor)

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_STATUSES

    def snapshot(self) -> Dict[str, Any]:
        """Return a JSON-serialisable view of the state for hosts."""

        return {
            "status": self.status,
            "end_reason": self.end_reason,
            "blocking": self.blocking,
            "cursor": self.cursor,
            "total": len(self.transitions),
            "current_background": self.current_background,
            "current_dialogue": (
                self.current_dialogue.to_payload() if self.current_dialogue else None
            ),
            "applied": len(self.history),
        }


__all__ = [
    "DialogueLine",
    "EndReason",
    "EngineStatus",
    "FINISHED_STATUSES",
    "PlaybackState",
]
