"""
Phase settings and their JSON persistence for Health Clock.

Provides:
- TimeUnit / PhaseSettings: durations plus reminder limits for both phases
- to_seconds(): deterministic conversion to whole seconds
- normalize_settings(): coerce raw key/value data into valid settings
- SettingsStore: best-effort load/save with atomic writes

Data Model (JSON):
{
  "workDuration": 25, "workUnit": "minutes",
  "restDuration": 5, "restUnit": "minutes",
  "workReminders": 3, "restReminders": 3
}
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)


class TimeUnit(str, Enum):
    HOURS = "hours"
    MINUTES = "minutes"
    SECONDS = "seconds"


_UNIT_SECONDS: Dict[TimeUnit, int] = {
    TimeUnit.HOURS: 3600,
    TimeUnit.MINUTES: 60,
    TimeUnit.SECONDS: 1,
}

DEFAULT_WORK_DURATION = 25
DEFAULT_REST_DURATION = 5
DEFAULT_UNIT = TimeUnit.MINUTES
DEFAULT_REMINDERS = 3
MIN_REMINDERS = 1
MAX_REMINDERS = 100


def to_seconds(duration: int, unit: TimeUnit | str) -> int:
    """Convert a duration in the given unit to whole seconds."""
    if duration < 0:
        raise ValueError(f"duration must be >= 0, got {duration}")
    try:
        unit = TimeUnit(unit)
    except ValueError:
        raise ValueError(f"unknown time unit: {unit!r}") from None
    return int(duration) * _UNIT_SECONDS[unit]


@dataclass(frozen=True)
class PhaseSettings:
    work_duration: int = DEFAULT_WORK_DURATION
    work_unit: TimeUnit = DEFAULT_UNIT
    rest_duration: int = DEFAULT_REST_DURATION
    rest_unit: TimeUnit = DEFAULT_UNIT
    work_reminder_limit: int = DEFAULT_REMINDERS
    rest_reminder_limit: int = DEFAULT_REMINDERS

    def __post_init__(self) -> None:
        for name in ("work_unit", "rest_unit"):
            value = getattr(self, name)
            try:
                object.__setattr__(self, name, TimeUnit(value))
            except ValueError:
                raise ValueError(f"{name}: unknown time unit {value!r}") from None
        for name in ("work_duration", "rest_duration"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        for name in ("work_reminder_limit", "rest_reminder_limit"):
            if getattr(self, name) < MIN_REMINDERS:
                raise ValueError(f"{name} must be >= {MIN_REMINDERS}, got {getattr(self, name)}")

    @property
    def work_seconds(self) -> int:
        return to_seconds(self.work_duration, self.work_unit)

    @property
    def rest_seconds(self) -> int:
        return to_seconds(self.rest_duration, self.rest_unit)

    def with_changes(self, **changes: Any) -> "PhaseSettings":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workDuration": self.work_duration,
            "workUnit": self.work_unit.value,
            "restDuration": self.rest_duration,
            "restUnit": self.rest_unit.value,
            "workReminders": self.work_reminder_limit,
            "restReminders": self.rest_reminder_limit,
        }


def _positive_int(value: Any, default: int) -> int:
    # Booleans are ints in Python; treat them as junk.
    if isinstance(value, bool):
        return default
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return n if n > 0 else default


def _unit(value: Any, default: TimeUnit) -> TimeUnit:
    try:
        return TimeUnit(str(value).lower())
    except ValueError:
        return default


def _reminders(value: Any) -> int:
    n = _positive_int(value, DEFAULT_REMINDERS)
    return max(MIN_REMINDERS, min(MAX_REMINDERS, n))


def normalize_settings(raw: Mapping[str, Any]) -> PhaseSettings:
    """Build PhaseSettings from a raw mapping, substituting defaults for bad fields."""
    return PhaseSettings(
        work_duration=_positive_int(raw.get("workDuration"), DEFAULT_WORK_DURATION),
        work_unit=_unit(raw.get("workUnit"), DEFAULT_UNIT),
        rest_duration=_positive_int(raw.get("restDuration"), DEFAULT_REST_DURATION),
        rest_unit=_unit(raw.get("restUnit"), DEFAULT_UNIT),
        work_reminder_limit=_reminders(raw.get("workReminders")),
        rest_reminder_limit=_reminders(raw.get("restReminders")),
    )


def default_prefs_path() -> str:
    return os.environ.get("HEALTHCLOCK_PREFS") or os.path.join(
        os.path.expanduser("~"), ".healthclock_prefs.json"
    )


class SettingsStore:
    """Best-effort load/save of PhaseSettings with atomic writes."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or default_prefs_path()

    def load(self) -> PhaseSettings:
        if not os.path.exists(self.path):
            return PhaseSettings()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Failed to load settings from %s: %s", self.path, e)
            return PhaseSettings()
        if not isinstance(raw, dict):
            logger.warning("Ignoring settings file %s: expected an object", self.path)
            return PhaseSettings()
        return normalize_settings(raw)

    def save(self, settings: PhaseSettings) -> bool:
        # Atomic write: write to temp and replace
        tmp = self.path + ".tmp"
        try:
            folder = os.path.dirname(self.path)
            if folder:
                os.makedirs(folder, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(settings.to_dict(), f, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.warning("Failed to save settings to %s: %s", self.path, e)
            return False
        return True


__all__ = [
    "TimeUnit",
    "PhaseSettings",
    "SettingsStore",
    "to_seconds",
    "normalize_settings",
    "default_prefs_path",
]
