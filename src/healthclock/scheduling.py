"""
Deferred-callback primitives the engine runs on.

Every engine event (clock tick, reminder re-check) is delivered through a
Scheduler. Implementations must invoke callbacks one at a time on a single
thread so the engine never sees concurrent mutation.

- TkScheduler: wraps tkinter's ``after``/``after_cancel`` (Tk main loop thread)
- ManualScheduler: virtual clock driven by ``advance()`` for tests and headless runs
"""

from __future__ import annotations

import heapq
import itertools
import logging
from typing import Any, Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> Any:
        ...

    def cancel(self, handle: Any) -> None:
        ...


class TkScheduler:
    """Schedule callbacks on a Tk widget's event loop."""

    def __init__(self, widget: Any) -> None:
        self.widget = widget

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> str:
        return self.widget.after(max(0, int(round(delay_s * 1000))), callback)

    def cancel(self, handle: Any) -> None:
        if handle is None:
            return
        try:
            self.widget.after_cancel(handle)
        except Exception as e:  # widget already destroyed
            logger.debug("after_cancel(%s) failed: %s", handle, e)


class ManualScheduler:
    """Virtual-time scheduler; nothing runs until ``advance()`` is called."""

    def __init__(self) -> None:
        self.now: float = 0.0
        self._queue: List[Tuple[float, int, Callable[[], None]]] = []
        self._seq = itertools.count()
        self._cancelled: set[int] = set()

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> int:
        handle = next(self._seq)
        heapq.heappush(self._queue, (self.now + max(0.0, delay_s), handle, callback))
        return handle

    def cancel(self, handle: Any) -> None:
        if handle is not None:
            self._cancelled.add(handle)

    @property
    def pending(self) -> int:
        return sum(1 for _, h, _ in self._queue if h not in self._cancelled)

    def next_deadline(self) -> Optional[float]:
        for due, h, _ in sorted(self._queue):
            if h not in self._cancelled:
                return due
        return None

    def advance(self, seconds: float) -> int:
        """Move virtual time forward, running every callback that falls due.

        Callbacks scheduled while advancing run too if they are due before the
        target time. Returns the number of callbacks executed.
        """
        target = self.now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            due, handle, callback = heapq.heappop(self._queue)
            if handle in self._cancelled:
                self._cancelled.discard(handle)
                continue
            self.now = due
            callback()
            ran += 1
        self.now = target
        return ran


__all__ = ["Scheduler", "TkScheduler", "ManualScheduler"]
