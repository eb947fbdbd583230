"""
Repeating reminder raised when a phase runs out.

Protocol:
- enter(kind, limit): fire notification 0 right away, then one more every
  ``interval_s`` until ``limit`` notifications have fired in total
- once the budget is spent the reminder stays active but silent
- cancel(): drop any pending re-check and silence the notifier; idempotent

A re-check that fires after cancellation, or for an older reminder, does nothing.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from .scheduling import Scheduler
from .session import ReminderKind, ReminderState

logger = logging.getLogger(__name__)

REMINDER_INTERVAL_S = 15.0


class NotifyOutcome(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"
    FAILED = "failed"
    SKIPPED = "skipped"  # silenced by stop_all() before playback


class Notifier(Protocol):
    def notify(self, kind: ReminderKind) -> Optional["Future[NotifyOutcome]"]:
        ...

    def stop_all(self) -> None:
        ...


class ReminderScheduler:
    def __init__(
        self,
        scheduler: Scheduler,
        notifier: Notifier,
        interval_s: float = REMINDER_INTERVAL_S,
        on_attempt: Optional[Callable[[ReminderState], None]] = None,
    ) -> None:
        self._scheduler = scheduler
        self._notifier = notifier
        self.interval_s = interval_s
        self.on_attempt = on_attempt
        self.state: Optional[ReminderState] = None
        self._pending: Optional[Any] = None

    @property
    def active(self) -> bool:
        return self.state is not None and self.state.active

    def enter(self, kind: ReminderKind, limit: int) -> ReminderState:
        """Start a new reminder sequence, replacing any current one."""
        if limit < 1:
            raise ValueError(f"reminder limit must be >= 1, got {limit}")
        self._drop_pending()
        if self.state is not None:
            self.state.active = False
        state = ReminderState(kind=kind, limit=limit)
        self.state = state
        logger.info("Reminder %s started (limit=%d)", kind.value, limit)
        self._fire(state)
        if not state.exhausted:
            self._schedule(state)
        return state

    def cancel(self) -> None:
        self._drop_pending()
        if self.state is not None:
            self.state.active = False
            logger.info(
                "Reminder %s cancelled after %d notification(s)",
                self.state.kind.value,
                self.state.attempt + 1,
            )
            self.state = None
        try:
            self._notifier.stop_all()
        except Exception:
            logger.exception("Notifier failed to stop playback")

    # ---------- Internals ----------
    def _schedule(self, state: ReminderState) -> None:
        self._pending = self._scheduler.call_later(
            self.interval_s, lambda: self._recheck(state)
        )

    def _drop_pending(self) -> None:
        if self._pending is not None:
            self._scheduler.cancel(self._pending)
            self._pending = None

    def _recheck(self, state: ReminderState) -> None:
        if state is not self.state or not state.active:
            logger.debug("Stale reminder re-check ignored")
            return
        self._pending = None
        state.attempt += 1
        self._fire(state)
        if not state.exhausted:
            self._schedule(state)
        if self.on_attempt is not None:
            try:
                self.on_attempt(state)
            except Exception:
                logger.exception("Reminder attempt listener failed")

    def _fire(self, state: ReminderState) -> None:
        try:
            result = self._notifier.notify(state.kind)
        except Exception:
            # notify() should never raise
            logger.exception("Notifier raised for %s reminder", state.kind.value)
            return
        if result is not None:
            attempt = state.attempt
            result.add_done_callback(lambda f: _log_outcome(state.kind, attempt, f))


def _log_outcome(kind: ReminderKind, attempt: int, future: "Future[NotifyOutcome]") -> None:
    if future.cancelled() or future.exception() is not None:
        logger.warning("Reminder %s #%d: notifier did not settle", kind.value, attempt + 1)
        return
    outcome = future.result()
    if outcome is NotifyOutcome.FAILED:
        logger.warning("Reminder %s #%d: no cue could be played", kind.value, attempt + 1)
    else:
        logger.debug("Reminder %s #%d played (%s)", kind.value, attempt + 1, outcome.value)


__all__ = [
    "REMINDER_INTERVAL_S",
    "NotifyOutcome",
    "Notifier",
    "ReminderScheduler",
]
