"""
Tkinter front-end for the Health Clock engine.

- HealthClockWidget: countdown, phase label, progress bar and controls
- SettingsPanel: durations, units and reminder counts; every edit is saved
- ReminderDialog: shown while a reminder is active; the main button
  acknowledges, closing the window dismisses

The widget does not own the mainloop; pack()/grid() it in the host window.
Engine events are expected on the Tk thread (see TkScheduler).
"""

from __future__ import annotations

import logging
import tkinter as tk
from tkinter import ttk
from typing import Callable, Dict, Optional

from .engine import PhaseStateMachine
from .session import Phase, ReminderKind, TimerSession
from .settings import MAX_REMINDERS, MIN_REMINDERS, PhaseSettings, TimeUnit, normalize_settings

logger = logging.getLogger(__name__)

PHASE_LABELS: Dict[Phase, str] = {
    Phase.IDLE: "Ready",
    Phase.WORKING: "Working",
    Phase.RESTING: "Resting",
}

PHASE_COLORS: Dict[Phase, str] = {
    Phase.IDLE: "#666666",
    Phase.WORKING: "#1d4ed8",  # blue
    Phase.RESTING: "#15803d",  # green
}

DIALOG_TEXT: Dict[ReminderKind, Dict[str, str]] = {
    ReminderKind.WORK: {
        "title": "Take a break",
        "message": "Work time is over. Time to rest a little.",
        "button": "Rest",
    },
    ReminderKind.REST: {
        "title": "Back to it!",
        "message": "Rest time is over. Let's get back to work!",
        "button": "Go!",
    },
}


# ---------------------------- Settings ----------------------------


class SettingsPanel(ttk.LabelFrame):
    """Form for PhaseSettings. Calls on_change with normalised settings."""

    def __init__(
        self,
        master: tk.Misc,
        settings: PhaseSettings,
        on_change: Callable[[PhaseSettings], None],
    ) -> None:
        super().__init__(master, text="Settings (saved automatically)", padding=8)
        self._on_change = on_change
        self._loading = False

        units = [u.value for u in TimeUnit]
        self.work_duration = tk.StringVar()
        self.work_unit = tk.StringVar()
        self.rest_duration = tk.StringVar()
        self.rest_unit = tk.StringVar()
        self.work_reminders = tk.IntVar()
        self.rest_reminders = tk.IntVar()

        self._duration_row(0, "Work duration", self.work_duration, self.work_unit, units)
        self._duration_row(1, "Rest duration", self.rest_duration, self.rest_unit, units)
        self._reminder_row(2, "Reminders when work ends", self.work_reminders)
        self._reminder_row(3, "Reminders when rest ends", self.rest_reminders)
        self.columnconfigure(1, weight=1)

        self.set_settings(settings)
        for var in (
            self.work_duration,
            self.work_unit,
            self.rest_duration,
            self.rest_unit,
            self.work_reminders,
            self.rest_reminders,
        ):
            var.trace_add("write", self._changed)

    def _duration_row(
        self, row: int, label: str, value: tk.StringVar, unit: tk.StringVar, units: list[str]
    ) -> None:
        ttk.Label(self, text=label).grid(row=row, column=0, sticky="w", pady=2)
        ttk.Spinbox(self, from_=1, to=9999, textvariable=value, width=6).grid(
            row=row, column=1, sticky="w", padx=(6, 4)
        )
        ttk.Combobox(self, values=units, textvariable=unit, state="readonly", width=9).grid(
            row=row, column=2, sticky="w"
        )

    def _reminder_row(self, row: int, label: str, var: tk.IntVar) -> None:
        ttk.Label(self, text=label).grid(row=row, column=0, sticky="w", pady=2)
        tk.Scale(
            self,
            from_=MIN_REMINDERS,
            to=MAX_REMINDERS,
            orient=tk.HORIZONTAL,
            resolution=1,
            variable=var,
            showvalue=True,
        ).grid(row=row, column=1, columnspan=2, sticky="ew", padx=(6, 0))

    def set_settings(self, settings: PhaseSettings) -> None:
        self._loading = True
        try:
            self.work_duration.set(str(settings.work_duration))
            self.work_unit.set(settings.work_unit.value)
            self.rest_duration.set(str(settings.rest_duration))
            self.rest_unit.set(settings.rest_unit.value)
            self.work_reminders.set(settings.work_reminder_limit)
            self.rest_reminders.set(settings.rest_reminder_limit)
        finally:
            self._loading = False

    def current(self) -> PhaseSettings:
        def _int(var: tk.IntVar) -> object:
            try:
                return var.get()
            except tk.TclError:
                return None

        return normalize_settings(
            {
                "workDuration": self.work_duration.get(),
                "workUnit": self.work_unit.get(),
                "restDuration": self.rest_duration.get(),
                "restUnit": self.rest_unit.get(),
                "workReminders": _int(self.work_reminders),
                "restReminders": _int(self.rest_reminders),
            }
        )

    def _changed(self, *_args: object) -> None:
        if self._loading:
            return
        try:
            self._on_change(self.current())
        except Exception:
            logger.exception("Settings change handler failed")


# ---------------------------- Reminder dialog ----------------------------


class ReminderDialog(tk.Toplevel):
    def __init__(
        self,
        master: tk.Misc,
        kind: ReminderKind,
        on_acknowledge: Callable[[], None],
        on_dismiss: Callable[[], None],
    ) -> None:
        super().__init__(master)
        text = DIALOG_TEXT[kind]
        self.kind = kind
        self.title(text["title"])
        self.resizable(False, False)
        try:
            self.transient(master.winfo_toplevel())
            self.attributes("-topmost", True)
        except tk.TclError:
            pass

        body = ttk.Frame(self, padding=16)
        body.pack(fill=tk.BOTH, expand=True)
        ttk.Label(body, text=text["title"], font=("Segoe UI", 16, "bold")).pack()
        ttk.Label(body, text=text["message"], wraplength=260, justify="center").pack(pady=(8, 12))
        ttk.Button(body, text=text["button"], command=on_acknowledge).pack()
        self.count_lbl = ttk.Label(body, text="", foreground="#666")
        self.count_lbl.pack(pady=(8, 0))

        self.protocol("WM_DELETE_WINDOW", on_dismiss)

    def update_attempt(self, attempt: int) -> None:
        self.count_lbl.config(text=f"Reminder {attempt + 1}" if attempt > 0 else "")


# ---------------------------- Main widget ----------------------------


class HealthClockWidget(ttk.Frame):
    """Countdown display and controls bound to a PhaseStateMachine."""

    def __init__(
        self,
        master: tk.Misc,
        engine: PhaseStateMachine,
        settings: PhaseSettings,
        on_settings_change: Callable[[PhaseSettings], None],
    ) -> None:
        super().__init__(master, padding=8)
        self.engine = engine
        self._dialog: Optional[ReminderDialog] = None
        self._settings_visible = True

        self.display = tk.Label(self, text="00:00", font=("Consolas", 32, "bold"), fg="#ffffff")
        self.display.pack(fill=tk.X)
        self.phase_lbl = ttk.Label(self, text=PHASE_LABELS[Phase.IDLE], anchor="center")
        self.phase_lbl.pack(fill=tk.X, pady=(4, 0))
        self.progress = ttk.Progressbar(self, maximum=100.0, mode="determinate")
        self.progress.pack(fill=tk.X, pady=(6, 0))

        btns = ttk.Frame(self)
        btns.pack(fill=tk.X, pady=(8, 0))
        self.run_btn = ttk.Button(btns, text="Start", command=self._toggle_run)
        self.run_btn.pack(side=tk.LEFT)
        ttk.Button(btns, text="Reset", command=self.reset).pack(side=tk.LEFT, padx=(6, 0))
        self.settings_btn = ttk.Button(btns, text="Hide settings", command=self._toggle_settings)
        self.settings_btn.pack(side=tk.RIGHT)

        self.settings_panel = SettingsPanel(self, settings, on_settings_change)
        self.settings_panel.pack(fill=tk.X, pady=(8, 0))

        self.engine.on_change(self._on_change)
        self._render(self.engine.snapshot())

    # ---------- UI callbacks ----------
    def _toggle_run(self) -> None:
        if self.engine.snapshot().running:
            self.pause()
        else:
            self.start()

    def start(self) -> None:
        try:
            if self.engine.snapshot().phase is Phase.IDLE:
                self._show_settings(False)
            self.engine.start()
        except Exception:
            logger.exception("Start failed")

    def pause(self) -> None:
        try:
            self.engine.pause()
        except Exception:
            logger.exception("Pause failed")

    def reset(self) -> None:
        try:
            self.engine.reset()
            self._show_settings(True)
        except Exception:
            logger.exception("Reset failed")

    def _acknowledge(self) -> None:
        try:
            self.engine.acknowledge()
        except Exception:
            logger.exception("Acknowledge failed")

    def _dismiss(self) -> None:
        try:
            self.engine.dismiss()
        except Exception:
            logger.exception("Dismiss failed")

    def _toggle_settings(self) -> None:
        self._show_settings(not self._settings_visible)

    def _show_settings(self, visible: bool) -> None:
        if visible == self._settings_visible:
            return
        self._settings_visible = visible
        if visible:
            self.settings_panel.pack(fill=tk.X, pady=(8, 0))
        else:
            self.settings_panel.pack_forget()
        self.settings_btn.config(text="Hide settings" if visible else "Show settings")

    # ---------- Rendering ----------
    def _on_change(self, snap: TimerSession) -> None:
        self._render(snap)
        self._sync_dialog(snap)

    def _render(self, snap: TimerSession) -> None:
        self.display.config(text=self.engine.remaining_formatted, bg=PHASE_COLORS[snap.phase])
        label = PHASE_LABELS[snap.phase]
        if snap.phase is not Phase.IDLE and not snap.running:
            label += " (paused)"
        self.phase_lbl.config(text=label)
        self.progress["value"] = self.engine.progress * 100.0

        if snap.running:
            self.run_btn.config(text="Pause", state=tk.NORMAL)
        else:
            self.run_btn.config(
                text="Start" if snap.phase is Phase.IDLE else "Continue",
                state=tk.DISABLED if snap.reminder_active else tk.NORMAL,
            )

    def _sync_dialog(self, snap: TimerSession) -> None:
        reminder = snap.reminder if snap.reminder_active else None
        if reminder is None:
            self._close_dialog()
            return
        if self._dialog is not None and self._dialog.kind is not reminder.kind:
            self._close_dialog()
        if self._dialog is None:
            self._dialog = ReminderDialog(self, reminder.kind, self._acknowledge, self._dismiss)
        self._dialog.update_attempt(reminder.attempt)

    def _close_dialog(self) -> None:
        if self._dialog is not None:
            try:
                self._dialog.destroy()
            except tk.TclError:
                pass
            self._dialog = None


__all__ = [
    "HealthClockWidget",
    "SettingsPanel",
    "ReminderDialog",
]
