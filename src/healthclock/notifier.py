"""
Audio and desktop cues for Health Clock reminders.

AudioNotifier.notify(kind) returns at once; the cue plays on a daemon thread:
- primary: the configured sound file for the kind, through pygame.mixer
- fallback: a short decaying tone synthesized in-process
- alongside: a desktop notification through plyer (optional), on its own
  thread so a slow backend never delays the sound

Nothing here raises into the caller. The returned Future resolves to the
NotifyOutcome that was achieved.
"""

from __future__ import annotations

import array
import logging
import math
import os
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

from pygame import mixer  # noqa: E402
from plyer import notification as plyer_notification  # noqa: E402

from .reminder import NotifyOutcome  # noqa: E402
from .session import ReminderKind  # noqa: E402

logger = logging.getLogger(__name__)

APP_NAME = "Health Clock"

MESSAGES: Dict[ReminderKind, Tuple[str, str]] = {
    ReminderKind.WORK: ("Time for a break", "Work time is over, take a short rest."),
    ReminderKind.REST: ("Back to work", "Rest is over, let's get going!"),
}


def default_sounds_dir() -> str:
    return os.environ.get("HEALTHCLOCK_SOUNDS") or os.path.join(
        os.path.expanduser("~"), ".healthclock", "sounds"
    )


@dataclass(frozen=True)
class ToneSpec:
    frequency: float
    waveform: str  # "sine" | "triangle"
    gain: float
    duration_s: float
    floor: float = 0.01  # gain reached at the end of the decay


@dataclass
class NotifierConfig:
    # Work end plays the "go rest" cue, rest end the "go work" cue.
    work_end_sound: str = field(default_factory=lambda: os.path.join(default_sounds_dir(), "rest.mp3"))
    rest_end_sound: str = field(default_factory=lambda: os.path.join(default_sounds_dir(), "work.mp3"))
    work_end_tone: ToneSpec = ToneSpec(523.25, "sine", 0.3, 1.2)  # C5, gentle
    rest_end_tone: ToneSpec = ToneSpec(880.0, "triangle", 0.4, 0.8)  # A5, brisk
    sample_rate: int = 44100
    desktop_notifications: bool = True
    notification_timeout: int = 6


def synthesize_tone(spec: ToneSpec, sample_rate: int = 44100) -> bytes:
    """Render a tone with exponential decay as signed 16-bit mono PCM."""
    n = max(1, int(sample_rate * spec.duration_s))
    ratio = spec.floor / spec.gain if spec.gain > 0 else 0.0
    samples = array.array("h")
    for i in range(n):
        t = i / sample_rate
        phase = 2 * math.pi * spec.frequency * t
        if spec.waveform == "triangle":
            wave = (2 / math.pi) * math.asin(math.sin(phase))
        else:
            wave = math.sin(phase)
        envelope = spec.gain * (ratio ** (i / n)) if ratio > 0 else 0.0
        samples.append(int(32767 * envelope * wave))
    return samples.tobytes()


class AudioNotifier:
    """Fire-and-forget reminder cues with an in-process fallback tone."""

    def __init__(self, cfg: Optional[NotifierConfig] = None) -> None:
        self.cfg = cfg or NotifierConfig()
        self._lock = threading.Lock()
        self._generation = 0
        self._tones: Dict[ReminderKind, bytes] = {}

    # ---------- Public API ----------
    def notify(self, kind: ReminderKind) -> "Future[NotifyOutcome]":
        future: "Future[NotifyOutcome]" = Future()
        future.set_running_or_notify_cancel()
        with self._lock:
            generation = self._generation

        if self.cfg.desktop_notifications:
            threading.Thread(
                target=self._desktop_notify, args=(kind,), name="healthclock-desktop-notify", daemon=True
            ).start()

        def _do() -> None:
            try:
                outcome = self._play(kind, generation)
            except Exception:
                logger.exception("Unexpected failure playing %s cue", kind.value)
                outcome = NotifyOutcome.FAILED
            future.set_result(outcome)

        t = threading.Thread(target=_do, name=f"healthclock-cue-{kind.value}", daemon=True)
        t.start()
        return future

    def stop_all(self) -> None:
        with self._lock:
            self._generation += 1
        try:
            if mixer.get_init():
                mixer.stop()
        except Exception as e:
            logger.warning("Failed to stop audio playback: %s", e)

    # ---------- Internals ----------
    def _cancelled(self, generation: int) -> bool:
        with self._lock:
            return generation != self._generation

    def _ensure_mixer(self) -> bool:
        with self._lock:
            if mixer.get_init():
                return True
            try:
                # Tone buffers are mono at sample_rate; refuse a device that resamples them.
                mixer.init(frequency=self.cfg.sample_rate, size=-16, channels=1, allowedchanges=0)
            except Exception as e:
                logger.warning("Audio output unavailable: %s", e)
                return False
            return True

    def _sound_path(self, kind: ReminderKind) -> str:
        return self.cfg.work_end_sound if kind is ReminderKind.WORK else self.cfg.rest_end_sound

    def _tone_buffer(self, kind: ReminderKind) -> bytes:
        buf = self._tones.get(kind)
        if buf is None:
            spec = self.cfg.work_end_tone if kind is ReminderKind.WORK else self.cfg.rest_end_tone
            buf = synthesize_tone(spec, self.cfg.sample_rate)
            self._tones[kind] = buf
        return buf

    def _play(self, kind: ReminderKind, generation: int) -> NotifyOutcome:
        if not self._ensure_mixer():
            return NotifyOutcome.FAILED
        path = self._sound_path(kind)
        if os.path.exists(path):
            try:
                sound = mixer.Sound(path)
                if self._cancelled(generation):
                    return NotifyOutcome.SKIPPED
                return self._start(sound, generation, NotifyOutcome.PRIMARY)
            except Exception as e:
                logger.warning("Failed to play %s, using fallback tone: %s", path, e)
        else:
            logger.debug("Sound file %s not found, using fallback tone", path)
        try:
            sound = mixer.Sound(buffer=self._tone_buffer(kind))
            if self._cancelled(generation):
                return NotifyOutcome.SKIPPED
            return self._start(sound, generation, NotifyOutcome.FALLBACK)
        except Exception as e:
            logger.warning("Failed to play fallback tone: %s", e)
            return NotifyOutcome.FAILED

    def _start(self, sound: Any, generation: int, outcome: NotifyOutcome) -> NotifyOutcome:
        sound.play()
        if self._cancelled(generation):
            # stop_all() landed between the check and play()
            sound.stop()
            return NotifyOutcome.SKIPPED
        return outcome

    def _desktop_notify(self, kind: ReminderKind) -> None:
        if not self.cfg.desktop_notifications:
            return
        title, message = MESSAGES[kind]
        try:
            notify_func = getattr(plyer_notification, "notify", None)
            if callable(notify_func):
                notify_func(
                    title=title,
                    message=message,
                    timeout=self.cfg.notification_timeout,
                    app_name=APP_NAME,
                )
        except Exception as e:
            # Notifications are unavailable on some platforms
            logger.warning("Desktop notification failed: %s", e)


__all__ = [
    "AudioNotifier",
    "NotifierConfig",
    "ToneSpec",
    "MESSAGES",
    "synthesize_tone",
    "default_sounds_dir",
]
