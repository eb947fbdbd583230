"""
System tray integration for Health Clock.

- Phase-coloured icon (gray=idle, blue=working, green=resting, red=reminder)
- Tooltip with the current phase and remaining time
- Right-click menu: Show/Hide window, Start/Pause, Reset, Exit

Menu callbacks run on the pystray thread; the host app is responsible for
handing them over to its own event loop before touching the engine.

Usage:
    tray = SystemTrayManager(on_toggle_window=..., on_start=..., on_pause=...,
                             on_reset=..., on_exit=...)
    tray.start()
    engine.on_change(tray.update_from_session)
    ...
    tray.stop()
"""

from __future__ import annotations

import atexit
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

try:
    import pystray  # type: ignore
    from pystray import Menu, MenuItem  # type: ignore
    pystray_available = True
except Exception:  # pragma: no cover - missing package or no tray backend
    pystray = None  # type: ignore[assignment]
    Menu = None  # type: ignore[assignment]
    MenuItem = None  # type: ignore[assignment]
    pystray_available = False

try:
    from PIL import Image, ImageDraw  # type: ignore
except ImportError:  # pragma: no cover
    Image = None  # type: ignore[assignment]
    ImageDraw = None  # type: ignore[assignment]

from .session import Phase, TimerSession, format_remaining

logger = logging.getLogger(__name__)


# ------------------------ Configuration & State ------------------------

@dataclass
class TrayState:
    """What the tray currently shows"""
    phase: Phase = Phase.IDLE
    running: bool = False
    reminder_active: bool = False
    remaining_seconds: int = 0
    window_visible: bool = True


@dataclass
class TrayConfig:
    """Tray appearance"""
    icon_size: int = 64
    icon_padding: int = 8

    # Colors (RGBA tuples)
    color_idle: tuple[int, int, int, int] = (127, 140, 141, 255)      # Gray
    color_working: tuple[int, int, int, int] = (59, 130, 246, 255)    # Blue
    color_resting: tuple[int, int, int, int] = (34, 197, 94, 255)     # Green
    color_reminder: tuple[int, int, int, int] = (231, 76, 60, 255)    # Red

    tooltip_template: str = "Health Clock: {status} | {remaining}"


# ------------------------ Icon Generation ------------------------

class TrayIconGenerator:
    """Builds and caches tray icons per visual state"""

    def __init__(self, config: TrayConfig) -> None:
        self.config = config
        self._icon_cache: Dict[str, Any] = {}

    def create_icon(self, state: TrayState) -> Optional[Any]:
        """Solid circle in the phase colour; white dot while counting down.

        Returns None when Pillow is unavailable.
        """
        if Image is None or ImageDraw is None:
            return None

        color = self._get_state_color(state)
        cache_key = f"{color}_{state.running}_{state.window_visible}"
        if cache_key in self._icon_cache:
            return self._icon_cache[cache_key]

        size = self.config.icon_size
        img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)

        padding = self.config.icon_padding
        if not state.window_visible:
            color = (*color[:3], int(color[3] * 0.7))
        draw.ellipse((padding, padding, size - padding, size - padding), fill=color)

        if state.running:
            dot = size // 6
            x = size - dot - 2
            draw.ellipse((x, 2, x + dot, 2 + dot), fill=(255, 255, 255, 255))

        self._icon_cache[cache_key] = img
        return img

    def _get_state_color(self, state: TrayState) -> tuple[int, int, int, int]:
        if state.reminder_active:
            return self.config.color_reminder
        if state.phase is Phase.WORKING:
            return self.config.color_working
        if state.phase is Phase.RESTING:
            return self.config.color_resting
        return self.config.color_idle

    def clear_cache(self) -> None:
        self._icon_cache.clear()


# ------------------------ System Tray Manager ------------------------

class SystemTrayManager:
    """Keeps a pystray icon in sync with the engine and forwards menu commands."""

    def __init__(
        self,
        on_toggle_window: Optional[Callable[[], None]] = None,
        on_start: Optional[Callable[[], None]] = None,
        on_pause: Optional[Callable[[], None]] = None,
        on_reset: Optional[Callable[[], None]] = None,
        on_exit: Optional[Callable[[], None]] = None,
        config: Optional[TrayConfig] = None,
    ) -> None:
        self.config = config or TrayConfig()
        self.state = TrayState()
        self.icon_generator = TrayIconGenerator(self.config)

        self.on_toggle_window = on_toggle_window
        self.on_start = on_start
        self.on_pause = on_pause
        self.on_reset = on_reset
        self.on_exit = on_exit

        self._tray_icon: Optional[Any] = None
        self._tray_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._update_lock = threading.Lock()

        atexit.register(self._cleanup)

    # -------------------- Public API --------------------

    def start(self) -> bool:
        """Start the tray thread. False if pystray/Pillow are missing."""
        if not self.dependencies_available():
            return False
        if self._tray_thread and self._tray_thread.is_alive():
            return True

        self._stop_event.clear()
        self._tray_thread = threading.Thread(
            target=self._run_tray, name="healthclock-tray", daemon=True
        )
        self._tray_thread.start()
        return True

    def stop(self) -> None:
        self._stop_event.set()
        if self._tray_icon is not None:
            try:
                self._tray_icon.stop()
            except Exception as e:
                logger.debug("Tray icon stop failed: %s", e)
        if self._tray_thread and self._tray_thread.is_alive() and self._tray_thread is not threading.current_thread():
            self._tray_thread.join(timeout=3.0)
        self._cleanup()

    def update_from_session(self, session: TimerSession) -> None:
        """Engine listener: mirror a TimerSession snapshot."""
        with self._update_lock:
            changed = (
                self.state.phase is not session.phase
                or self.state.running != session.running
                or self.state.reminder_active != session.reminder_active
            )
            self.state.phase = session.phase
            self.state.running = session.running
            self.state.reminder_active = session.reminder_active
            self.state.remaining_seconds = session.remaining_seconds

            if changed:
                self._update_icon_async()
                self._update_menu_async()
            self._update_tooltip_async()

    def set_window_visibility(self, visible: bool) -> None:
        with self._update_lock:
            if self.state.window_visible != visible:
                self.state.window_visible = visible
                self._update_icon_async()
                self._update_menu_async()

    # -------------------- Internal Implementation --------------------

    def _run_tray(self) -> None:
        try:
            if pystray is not None:
                self._tray_icon = pystray.Icon(
                    name="healthclock",
                    icon=self.icon_generator.create_icon(self.state),
                    title=self._generate_tooltip(),
                    menu=self._create_menu(),
                )
                self._tray_icon.run()
        except Exception:
            logger.exception("System tray stopped unexpectedly")
        finally:
            self._tray_icon = None

    def _create_menu(self) -> Any:
        if Menu is None or MenuItem is None:
            return None

        if self.state.running:
            run_label, run_action = "Pause", self._menu_pause
        else:
            run_label = "Start" if self.state.phase is Phase.IDLE else "Continue"
            run_action = self._menu_start

        return Menu(
            MenuItem(
                text="Hide Window" if self.state.window_visible else "Show Window",
                action=self._menu_toggle_window,
                default=True,
            ),
            MenuItem(
                text=run_label,
                action=run_action,
                enabled=not self.state.reminder_active,
            ),
            MenuItem(text="Reset", action=self._menu_reset),
            Menu.SEPARATOR,
            MenuItem(text="Exit Health Clock", action=self._menu_exit),
        )

    def _status_text(self) -> str:
        if self.state.reminder_active:
            return "Time's up"
        if self.state.phase is Phase.IDLE:
            return "Ready"
        label = "Working" if self.state.phase is Phase.WORKING else "Resting"
        return label if self.state.running else f"{label} (paused)"

    def _generate_tooltip(self) -> str:
        return self.config.tooltip_template.format(
            status=self._status_text(),
            remaining=format_remaining(self.state.remaining_seconds),
        )

    # -------------------- Event Handlers --------------------

    def _invoke(self, cb: Optional[Callable[[], None]], what: str) -> None:
        if cb is None:
            return
        try:
            cb()
        except Exception:
            logger.exception("Tray %s handler failed", what)

    def _menu_toggle_window(self, icon: Any, item: Any) -> None:
        self._invoke(self.on_toggle_window, "toggle window")

    def _menu_start(self, icon: Any, item: Any) -> None:
        self._invoke(self.on_start, "start")

    def _menu_pause(self, icon: Any, item: Any) -> None:
        self._invoke(self.on_pause, "pause")

    def _menu_reset(self, icon: Any, item: Any) -> None:
        self._invoke(self.on_reset, "reset")

    def _menu_exit(self, icon: Any, item: Any) -> None:
        self._invoke(self.on_exit, "exit")
        self.stop()

    # -------------------- Async Updates --------------------

    def _update_icon_async(self) -> None:
        if self._tray_icon is None:
            return
        try:
            new_icon = self.icon_generator.create_icon(self.state)
            if new_icon:
                self._tray_icon.icon = new_icon
        except Exception as e:
            logger.warning("Tray icon update failed: %s", e)

    def _update_tooltip_async(self) -> None:
        if self._tray_icon is None:
            return
        try:
            self._tray_icon.title = self._generate_tooltip()
        except Exception as e:
            logger.warning("Tray tooltip update failed: %s", e)

    def _update_menu_async(self) -> None:
        if self._tray_icon is None:
            return
        try:
            new_menu = self._create_menu()
            if new_menu:
                self._tray_icon.menu = new_menu
        except Exception as e:
            logger.warning("Tray menu update failed: %s", e)

    def _cleanup(self) -> None:
        self.icon_generator.clear_cache()
        self._tray_icon = None

    # -------------------- Utility Properties --------------------

    @property
    def is_running(self) -> bool:
        return (
            self._tray_thread is not None
            and self._tray_thread.is_alive()
            and not self._stop_event.is_set()
        )

    @staticmethod
    def dependencies_available() -> bool:
        return pystray_available and Image is not None


__all__ = [
    "SystemTrayManager",
    "TrayConfig",
    "TrayState",
    "TrayIconGenerator",
]
