"""PyQt6 binding for the ``after`` / ``after_cancel`` timer contract."""
from __future__ import annotations

from typing import Callable, Optional, Set

from PyQt6.QtCore import QObject, QTimer


class QtTimerScheduler:
    """Single-shot QTimers keyed by the timer object itself."""

    def __init__(self, parent: Optional[QObject] = None) -> None:
        self._parent = parent
        self._live: Set[QTimer] = set()

    def after(self, delay_ms: int, callback: Callable[[], None]) -> QTimer:
        timer = QTimer(self._parent)
        timer.setSingleShot(True)
        timer.setInterval(max(0, int(delay_ms)))

        def _fire() -> None:
            self._live.discard(timer)
            timer.deleteLater()
            callback()

        timer.timeout.connect(_fire)
        self._live.add(timer)
        timer.start()
        return timer

    def after_cancel(self, handle: object) -> None:
        if not isinstance(handle, QTimer) or handle not in self._live:
            return
        self._live.discard(handle)
        handle.stop()
        handle.deleteLater()

    def pending(self) -> int:
        return len(self._live)

    def cancel_all(self) -> None:
        for timer in list(self._live):
            self.after_cancel(timer)
