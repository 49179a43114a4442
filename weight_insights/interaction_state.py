"""Gesture re-entrancy guard expressed as a small state machine."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Dict, FrozenSet, Iterator

from weight_insights.logging_utils import ENGINE_LOGGER_NAME

_LOGGER = logging.getLogger(f"{ENGINE_LOGGER_NAME}.Sync")


class InteractionState(str, Enum):
    IDLE = "idle"
    ZOOMING = "zooming"
    BRUSHING = "brushing"
    COMMITTING_REGRESSION = "committing_regression"


class GestureSource(str, Enum):
    """Origin tag carried by every gesture event."""

    USER = "user"
    ZOOM = "zoom"
    BRUSH = "brush"
    REGRESSION = "regression"
    PROGRAMMATIC = "programmatic"


_TRANSITIONS: Dict[InteractionState, FrozenSet[InteractionState]] = {
    InteractionState.IDLE: frozenset(
        {
            InteractionState.ZOOMING,
            InteractionState.BRUSHING,
            InteractionState.COMMITTING_REGRESSION,
        }
    ),
    InteractionState.ZOOMING: frozenset(),
    InteractionState.BRUSHING: frozenset(),
    InteractionState.COMMITTING_REGRESSION: frozenset(),
}


class InteractionGuard:
    """Tracks the active gesture and refuses nested entries until it completes."""

    def __init__(self) -> None:
        self._state = InteractionState.IDLE
        self.suppressed = 0

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def is_idle(self) -> bool:
        return self._state is InteractionState.IDLE

    def try_enter(self, target: InteractionState, *, reason: str = "") -> bool:
        if target not in _TRANSITIONS[self._state]:
            self.suppressed += 1
            _LOGGER.debug(
                "Suppressed transition %s -> %s (reason=%s)",
                self._state.value,
                target.value,
                reason or "unspecified",
            )
            return False
        self._state = target
        return True

    def complete(self, state: InteractionState) -> None:
        if self._state is not state:
            _LOGGER.debug("Ignoring completion of %s while in %s", state.value, self._state.value)
            return
        self._state = InteractionState.IDLE

    @contextmanager
    def active(self, target: InteractionState, *, reason: str = "") -> Iterator[bool]:
        entered = self.try_enter(target, reason=reason)
        try:
            yield entered
        finally:
            if entered:
                self.complete(target)
