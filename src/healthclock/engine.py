"""
Work/rest phase engine for Health Clock.

Features:
- State machine over idle -> working <-> resting, with pause/resume and reset
- One-second countdown driven by Clock ticks through a Scheduler
- Repeating reminder when a phase runs out, acknowledged to advance or
  dismissed to stay paused
- Settings are snapshotted when a phase is armed; later edits apply to the
  next phase only

Integration contract:
- Pass a Scheduler (TkScheduler in the app, ManualScheduler in tests), a
  Notifier and a zero-argument callable returning the current PhaseSettings.
- Commands that do not apply to the current state are ignored, so late or
  duplicated UI events are harmless.
- Register listeners with on_change(); they receive a TimerSession snapshot
  after every state change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from .clock import Clock
from .phase_timer import PhaseTimer
from .reminder import REMINDER_INTERVAL_S, Notifier, ReminderScheduler
from .scheduling import Scheduler
from .session import Phase, ReminderKind, TimerSession, format_remaining
from .settings import PhaseSettings

logger = logging.getLogger(__name__)


# ---------------------------- Configuration ----------------------------


@dataclass
class EngineConfig:
    tick_s: float = 1.0
    reminder_interval_s: float = REMINDER_INTERVAL_S


# ---------------------------- Core State Machine ----------------------------


class PhaseStateMachine:
    """Owns the TimerSession and routes commands and timer events.

    States:
        IDLE -> WORKING -> (reminder) -> RESTING -> (reminder) -> WORKING ...
        reset returns to IDLE from anywhere.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        notifier: Notifier,
        settings: Callable[[], PhaseSettings],
        cfg: Optional[EngineConfig] = None,
    ) -> None:
        self.cfg = cfg or EngineConfig()
        self._settings = settings
        self.session = TimerSession()
        self.clock = Clock(scheduler, self._on_tick, interval_s=self.cfg.tick_s)
        self.timer = PhaseTimer(self.session, self._on_phase_expired)
        self.reminders = ReminderScheduler(
            scheduler,
            notifier,
            interval_s=self.cfg.reminder_interval_s,
            on_attempt=lambda _state: self._emit(),
        )
        self._snapshot: Optional[PhaseSettings] = None
        self._listeners: List[Callable[[TimerSession], None]] = []

    # ---------- Public API ----------
    def start(self) -> None:
        """Begin a work phase from idle, or resume a paused phase."""
        s = self.session
        if s.phase is Phase.IDLE:
            self._begin_phase(Phase.WORKING)
            return
        if s.reminder_active:
            logger.debug("start ignored: reminder is active")
            return
        if s.running:
            return
        logger.info("Resuming %s at %s", s.phase.value, self.remaining_formatted)
        s.running = True
        self.clock.start()
        self.timer.resume()
        self._emit()

    resume = start

    def pause(self) -> None:
        s = self.session
        if s.phase is Phase.IDLE or not s.running:
            logger.debug("pause ignored in %s (running=%s)", s.phase.value, s.running)
            return
        self.clock.stop()
        self.timer.pause()
        s.running = False
        logger.info("Paused %s at %s", s.phase.value, self.remaining_formatted)
        self._emit()

    def reset(self) -> None:
        self.clock.stop()
        self.reminders.cancel()
        self.timer.disarm()
        self.session.reset()
        self._snapshot = None
        logger.info("Reset to idle")
        self._emit()

    def acknowledge(self) -> None:
        """Close the reminder and move on to the other phase."""
        s = self.session
        if not s.reminder_active:
            logger.debug("acknowledge ignored: no active reminder")
            return
        self.reminders.cancel()
        s.reminder = None
        nxt = Phase.RESTING if s.phase is Phase.WORKING else Phase.WORKING
        self._begin_phase(nxt)

    def dismiss(self) -> None:
        """Close the reminder but stay in the current phase, paused at zero."""
        s = self.session
        if not s.reminder_active:
            logger.debug("dismiss ignored: no active reminder")
            return
        self.reminders.cancel()
        self.clock.stop()
        self.timer.pause()
        s.reminder = None
        s.running = False
        s.remaining_seconds = 0
        logger.info("Reminder dismissed; %s paused", s.phase.value)
        self._emit()

    def on_change(self, cb: Callable[[TimerSession], None]) -> None:
        """Register a listener receiving a TimerSession snapshot."""
        self._listeners.append(cb)

    def snapshot(self) -> TimerSession:
        return self.session.snapshot()

    @property
    def settings_snapshot(self) -> Optional[PhaseSettings]:
        """Settings captured when the current phase was armed."""
        return self._snapshot

    @property
    def total_seconds(self) -> int:
        return self.timer.total_seconds

    @property
    def progress(self) -> float:
        if self.session.phase is Phase.IDLE:
            return 0.0
        return self.timer.progress

    @property
    def remaining_formatted(self) -> str:
        return format_remaining(self.session.remaining_seconds)

    # ---------- Internals ----------
    def _begin_phase(self, phase: Phase) -> None:
        settings = self._settings()
        self._snapshot = settings
        seconds = settings.work_seconds if phase is Phase.WORKING else settings.rest_seconds
        s = self.session
        s.phase = phase
        s.running = True
        logger.info("Starting %s phase (%s)", phase.value, format_remaining(seconds))
        self.clock.start()
        # arm() expires synchronously for zero-length phases, after the clock started.
        self.timer.arm(seconds)
        self._emit()

    def _on_tick(self) -> None:
        self.timer.tick()
        if self.session.running:
            self._emit()

    def _on_phase_expired(self) -> None:
        s = self.session
        if s.phase is Phase.IDLE:
            return
        self.clock.stop()
        self.timer.pause()
        s.running = False
        snap = self._snapshot or self._settings()
        if s.phase is Phase.WORKING:
            kind, limit = ReminderKind.WORK, snap.work_reminder_limit
        else:
            kind, limit = ReminderKind.REST, snap.rest_reminder_limit
        logger.info("%s phase finished", s.phase.value.capitalize())
        s.reminder = self.reminders.enter(kind, limit)
        self._emit()

    def _emit(self) -> None:
        snap = self.session.snapshot()
        for cb in list(self._listeners):
            try:
                cb(snap)
            except Exception:
                logger.exception("Engine listener failed")


__all__ = [
    "EngineConfig",
    "PhaseStateMachine",
]
