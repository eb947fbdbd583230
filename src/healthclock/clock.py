from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .scheduling import Scheduler

logger = logging.getLogger(__name__)


class Clock:
    """One-second tick source on top of a Scheduler.

    start()/stop() are idempotent. There is no catch-up: if the host is
    suspended, the missed seconds are simply lost.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        on_tick: Callable[[], None],
        interval_s: float = 1.0,
    ) -> None:
        self._scheduler = scheduler
        self._on_tick = on_tick
        self.interval_s = interval_s
        self._handle: Optional[Any] = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self._handle is None:
            self._handle = self._scheduler.call_later(self.interval_s, self._fire)

    def stop(self) -> None:
        if self._handle is not None:
            self._scheduler.cancel(self._handle)
            self._handle = None

    def _fire(self) -> None:
        if self._handle is None:
            return
        # Re-arm before the callback so a stop() inside it wins.
        self._handle = self._scheduler.call_later(self.interval_s, self._fire)
        self._on_tick()
