from __future__ import annotations

import logging
from typing import Callable, Dict, Tuple

from weight_insights.logging_utils import ENGINE_LOGGER_NAME
from weight_insights.services.debounced_committer import AfterCancelFn, AfterFn

_LOGGER = logging.getLogger(f"{ENGINE_LOGGER_NAME}.Commit")


class DebounceTimers:
    """Keyed re-armable timers; each key keeps at most one pending callback."""

    def __init__(self, *, after: AfterFn, after_cancel: AfterCancelFn) -> None:
        self._after = after
        self._after_cancel = after_cancel
        self._pending: Dict[str, Tuple[object, Callable[[], None]]] = {}

    def schedule(self, key: str, callback: Callable[[], None], *, delay_ms: int) -> object:
        self.cancel(key)

        def _fire() -> None:
            self._pending.pop(key, None)
            callback()

        handle = self._after(max(0, int(delay_ms)), _fire)
        self._pending[key] = (handle, callback)
        return handle

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    def flush(self, key: str) -> bool:
        """Run the pending callback for ``key`` now; False when nothing is pending."""
        entry = self._pending.get(key)
        if entry is None:
            return False
        self.cancel(key)
        entry[1]()
        return True

    def cancel(self, key: str) -> None:
        entry = self._pending.pop(key, None)
        if entry is None:
            return
        try:
            self._after_cancel(entry[0])
        except Exception:
            _LOGGER.debug("Failed to cancel %s debounce %r", key, entry[0], exc_info=True)

    def cancel_all(self) -> None:
        for key in list(self._pending):
            self.cancel(key)
