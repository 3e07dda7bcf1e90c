"""Execution engine that drains compiled transitions into playback state."""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

from .characters import CharacterRegistry, SpriteLookup
from .compiler import compile_file, compile_script
from .config import NovelConfig, load_novel_config
from .errors import NovelError, PlaybackError, SpriteLookupError
from .state import EngineStatus, PlaybackState
from .transitions import ApplyContext, Transition


logger = logging.getLogger(__name__)


@dataclass
class PollReport:
    """Outcome of a single :meth:`ScriptEngine.poll` call."""

    applied: List[Transition] = field(default_factory=list)
    errors: List[NovelError] = field(default_factory=list)
    status: EngineStatus = "idle"

    @property
    def is_noop(self) -> bool:
        return not self.applied and not self.errors


class ScriptEngine:
    """Own the compiled sequence and apply it to playback state when polled.

    The engine is pulled, never pushed: a host calls :meth:`poll` once per
    tick. A poll applies transitions in file order until the sequence runs
    out, a ``say`` blocks, an ``end`` is reached, or the optional per-poll
    bound from the configuration is hit. :meth:`advance` dismisses a blocking
    dialogue so the next poll can continue.
    """

    def __init__(
        self,
        characters: CharacterRegistry | None = None,
        config: NovelConfig | None = None,
        *,
        lookup_sprite: SpriteLookup | None = None,
    ) -> None:
        self.characters = characters if characters is not None else CharacterRegistry()
        self.config = config or load_novel_config()
        self.lookup_sprite = lookup_sprite
        self._state = PlaybackState()

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def status(self) -> EngineStatus:
        return self._state.status

    def load(self, transitions: Iterable[Transition]) -> PlaybackState:
        """Replace the current sequence and cursor with ``transitions``."""

        sequence = list(transitions)
        if self._state.status != "idle":
            logger.info(
                "Discarding %d pending transition(s) for new script",
                self._state.remaining,
            )
        self._state = PlaybackState(transitions=sequence, status="running")
        logger.info("Loaded script with %d transition(s)", len(sequence))
        return self._state

    def compile(self, text: str) -> PlaybackState:
        """Compile ``text`` and load it; a compile error leaves state untouched."""

        transitions = compile_script(text, log_line_limit=self.config.log_line_limit)
        return self.load(transitions)

    def compile_file(self, path: str | Path) -> PlaybackState:
        """Compile the script at ``path`` and load it."""

        transitions = compile_file(path, log_line_limit=self.config.log_line_limit)
        return self.load(transitions)

    def restart(self) -> PlaybackState:
        """Replay the retained sequence from the beginning.

        Character records are owned by the host and are left as they are.
        """

        if self._state.status == "idle":
            raise PlaybackError("No script loaded")
        if self._state.status == "ended":
            raise PlaybackError("Script playback ended; load a script to play again")
        return self.load(self._state.transitions)

    def _context(self) -> ApplyContext:
        return ApplyContext(
            state=self._state,
            characters=self.characters,
            config=self.config,
            lookup_sprite=self.lookup_sprite,
        )

    def poll(self) -> PollReport:
        """Drain transitions until blocked, finished, or the per-poll bound."""

        state = self._state
        report = PollReport(status=state.status)
        if state.status != "running":
            return report
        context = self._context()
        limit = self.config.max_transitions_per_poll
        while True:
            if state.blocking:
                state.status = "blocked"
                break
            if limit and len(report.applied) + len(report.errors) >= limit:
                break
            if state.cursor >= len(state.transitions):
                state.status = "exhausted"
                state.end_reason = "exhausted"
                logger.info("Script exhausted after %d transition(s)", len(state.history))
                break
            transition = state.transitions[state.cursor]
            state.cursor += 1
            try:
                transition.apply(context)
            except SpriteLookupError as exc:
                if self.config.lookup_error_policy == "raise":
                    raise
                logger.error("Skipping %s: %s", transition.to_line(), exc)
                report.errors.append(exc)
                continue
            state.history.append(transition)
            report.applied.append(transition)
            if state.status == "ended":
                break
        report.status = state.status
        return report

    def advance(self) -> bool:
        """Dismiss the blocking dialogue; return ``False`` if nothing was blocked."""

        state = self._state
        if state.status != "blocked":
            logger.debug("Ignoring advance while %s", state.status)
            return False
        state.blocking = False
        state.current_dialogue = None
        state.status = "running"
        return True


__all__ = ["PollReport", "ScriptEngine"]
