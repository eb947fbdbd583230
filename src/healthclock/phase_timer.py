from __future__ import annotations

from typing import Callable

from .session import TimerSession


class PhaseTimer:
    """Countdown for the active phase, stored on the shared TimerSession.

    Each consumed tick removes exactly one second, floored at zero.
    ``on_expired`` fires once per arming when the countdown reaches zero;
    a zero-length arm expires immediately.
    """

    def __init__(self, session: TimerSession, on_expired: Callable[[], None]) -> None:
        self.session = session
        self._on_expired = on_expired
        self.total_seconds: int = 0
        self._armed = False
        self._paused = True
        self._expired = False

    @property
    def paused(self) -> bool:
        return self._paused

    def arm(self, seconds: int) -> None:
        if seconds < 0:
            raise ValueError(f"seconds must be >= 0, got {seconds}")
        self.total_seconds = int(seconds)
        self.session.remaining_seconds = int(seconds)
        self._armed = True
        self._paused = False
        self._expired = False
        self._evaluate()

    def disarm(self) -> None:
        self.total_seconds = 0
        self.session.remaining_seconds = 0
        self._armed = False
        self._paused = True
        self._expired = False

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        """Consume ticks again. Resuming at zero re-raises expiry."""
        if not self._armed:
            return
        self._paused = False
        if self.session.remaining_seconds == 0:
            self._expired = False
            self._evaluate()

    def tick(self) -> None:
        if not self._armed or self._paused or self.session.remaining_seconds <= 0:
            return
        self.session.remaining_seconds -= 1
        self._evaluate()

    def _evaluate(self) -> None:
        if self.session.remaining_seconds == 0 and not self._expired:
            self._expired = True
            self._on_expired()

    @property
    def progress(self) -> float:
        if not self._armed:
            return 0.0
        if self.total_seconds <= 0:
            return 1.0
        return (self.total_seconds - self.session.remaining_seconds) / self.total_seconds
