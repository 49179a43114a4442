from __future__ import annotations

import logging
from typing import Callable, List, Optional

from weight_insights.logging_utils import ENGINE_LOGGER_NAME
from weight_insights.time_window import TimeWindow, windows_equal

AfterFn = Callable[[int, Callable[[], None]], object]
AfterCancelFn = Callable[[object], None]
RangeListener = Callable[[TimeWindow], None]

_LOGGER = logging.getLogger(f"{ENGINE_LOGGER_NAME}.Commit")


class DebouncedCommitter:
    """Turns per-frame view windows into the committed analysis range once interaction settles."""

    def __init__(
        self,
        *,
        window_fn: Callable[[], Optional[TimeWindow]],
        after: AfterFn,
        after_cancel: AfterCancelFn,
        settle_ms: int = 300,
        clear_hover_fn: Optional[Callable[[], None]] = None,
    ) -> None:
        self._window_fn = window_fn
        self._after = after
        self._after_cancel = after_cancel
        self.settle_ms = max(25, int(settle_ms))
        self._clear_hover = clear_hover_fn
        self._handle: object | None = None
        self._analysis_range: Optional[TimeWindow] = None
        self._listeners: List[RangeListener] = []
        self.commit_count = 0

    @property
    def analysis_range(self) -> Optional[TimeWindow]:
        return self._analysis_range

    @property
    def is_pending(self) -> bool:
        return self._handle is not None

    def add_listener(self, listener: RangeListener) -> None:
        self._listeners.append(listener)

    def note_interaction(self) -> object:
        """Arm, or re-arm, the settle timer."""
        self._cancel_handle()
        self._handle = self._after(self.settle_ms, self._on_settled)
        return self._handle

    def flush(self) -> bool:
        """Run the pending commit now; a no-op when nothing is pending."""
        if self._handle is None:
            return False
        self._cancel_handle()
        return self._settle()

    def cancel(self) -> None:
        self._cancel_handle()

    def commit_now(self, window: Optional[TimeWindow]) -> bool:
        """Commit ``window`` immediately, superseding any pending settle."""
        self._cancel_handle()
        return self._commit(window)

    def _on_settled(self) -> None:
        self._handle = None
        self._settle()

    def _settle(self) -> bool:
        committed = self._commit(self._window_fn())
        if self._clear_hover is not None:
            try:
                self._clear_hover()
            except Exception:
                _LOGGER.debug("Failed to clear hover state after settle", exc_info=True)
        return committed

    def _commit(self, window: Optional[TimeWindow]) -> bool:
        if window is None:
            _LOGGER.warning("No valid view window to commit; keeping analysis range %s", self._analysis_range)
            return False
        normalized = window.whole_days()
        if windows_equal(normalized, self._analysis_range):
            _LOGGER.debug("Analysis range unchanged (%s - %s)", normalized.start, normalized.end)
            return False
        self._analysis_range = normalized
        self.commit_count += 1
        _LOGGER.debug("Committed analysis range %s - %s", normalized.start, normalized.end)
        for listener in list(self._listeners):
            try:
                listener(normalized)
            except Exception:
                _LOGGER.exception("Analysis range listener failed")
        return True

    def _cancel_handle(self) -> None:
        handle = self._handle
        self._handle = None
        if handle is None:
            return
        try:
            self._after_cancel(handle)
        except Exception:
            _LOGGER.debug("Failed to cancel settle timer %r", handle, exc_info=True)
