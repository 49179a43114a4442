from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from weight_insights.logging_utils import ENGINE_LOGGER_NAME
from weight_insights.services.debounced_committer import AfterCancelFn, AfterFn

_LOGGER = logging.getLogger(f"{ENGINE_LOGGER_NAME}.Render")


@dataclass(frozen=True)
class RenderOptions:
    """Per-request render flags; ``interactive`` skips the full domain refresh."""

    interactive: bool = False
    reason: str = ""


@dataclass(frozen=True)
class SchedulerState:
    busy: bool
    pending_request: Optional[RenderOptions]


class RenderScheduler:
    """Re-entrancy guarded, coalescing render scheduler.

    A request made while a pass executes is parked in a single pending slot,
    overwriting any earlier one; completion of the pass issues exactly one
    follow-up. Requests made while a frame is scheduled but not yet running
    replace that frame's options.
    """

    def __init__(
        self,
        render_fn: Callable[[RenderOptions], None],
        *,
        after: AfterFn,
        after_cancel: AfterCancelFn,
        frame_delay_ms: int = 0,
    ) -> None:
        self._render = render_fn
        self._after = after
        self._after_cancel = after_cancel
        self._frame_delay_ms = max(0, int(frame_delay_ms))
        self._frame_handle: object | None = None
        self._scheduled: Optional[RenderOptions] = None
        self._executing = False
        self._pending: Optional[RenderOptions] = None
        self.pass_count = 0
        self.coalesced_count = 0

    @property
    def busy(self) -> bool:
        return self._executing or self._frame_handle is not None

    @property
    def state(self) -> SchedulerState:
        return SchedulerState(busy=self.busy, pending_request=self._pending)

    def request_render(self, options: Optional[RenderOptions] = None) -> None:
        options = options or RenderOptions()
        if self._executing:
            if self._pending is not None:
                self.coalesced_count += 1
            self._pending = options
            return
        if self._frame_handle is not None:
            self.coalesced_count += 1
            self._scheduled = options
            return
        self._scheduled = options
        self._frame_handle = self._after(self._frame_delay_ms, self._run_frame)

    def cancel(self) -> None:
        handle = self._frame_handle
        self._frame_handle = None
        self._scheduled = None
        self._pending = None
        if handle is None:
            return
        try:
            self._after_cancel(handle)
        except Exception:
            _LOGGER.debug("Failed to cancel render frame %r", handle, exc_info=True)

    def _run_frame(self) -> None:
        self._frame_handle = None
        options = self._scheduled or RenderOptions()
        self._scheduled = None
        self._executing = True
        try:
            self.pass_count += 1
            self._render(options)
        except Exception:
            _LOGGER.exception("Render pass failed (reason=%s interactive=%s)", options.reason, options.interactive)
        finally:
            self._executing = False
            pending = self._pending
            self._pending = None
            if pending is not None:
                _LOGGER.debug("Running pending render (reason=%s)", pending.reason)
                self.request_render(pending)
