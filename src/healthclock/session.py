from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional


class Phase(str, Enum):
    IDLE = "idle"
    WORKING = "working"
    RESTING = "resting"


class ReminderKind(str, Enum):
    WORK = "work"  # work phase ended
    REST = "rest"  # rest phase ended


@dataclass
class ReminderState:
    kind: ReminderKind
    limit: int
    attempt: int = 0
    active: bool = True

    @property
    def exhausted(self) -> bool:
        """True once no further repeat will be scheduled."""
        return self.attempt >= self.limit - 1


@dataclass
class TimerSession:
    phase: Phase = Phase.IDLE
    remaining_seconds: int = 0
    running: bool = False
    reminder: Optional[ReminderState] = None

    @property
    def reminder_active(self) -> bool:
        return self.reminder is not None and self.reminder.active

    def reset(self) -> None:
        self.phase = Phase.IDLE
        self.remaining_seconds = 0
        self.running = False
        self.reminder = None

    def snapshot(self) -> "TimerSession":
        """Detached copy safe to hand to the presentation layer."""
        reminder = replace(self.reminder) if self.reminder is not None else None
        return replace(self, reminder=reminder)

    def to_dict(self) -> Dict[str, object]:
        return {
            "phase": self.phase.value,
            "remaining_seconds": self.remaining_seconds,
            "running": self.running,
            "reminder": None
            if self.reminder is None
            else {
                "kind": self.reminder.kind.value,
                "attempt": self.reminder.attempt,
                "limit": self.reminder.limit,
                "active": self.reminder.active,
            },
        }


def format_remaining(seconds: int) -> str:
    """HH:MM:SS when at least an hour remains, else MM:SS."""
    seconds = max(0, int(seconds))
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    if h > 0:
        return f"{h:02d}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"
