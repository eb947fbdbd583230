from __future__ import annotations

import logging
import os
import sys
import tkinter as tk
from typing import Callable, Optional

from .engine import EngineConfig, PhaseStateMachine
from .notifier import AudioNotifier
from .reminder import Notifier
from .scheduling import TkScheduler
from .settings import PhaseSettings, SettingsStore
from .system_tray import SystemTrayManager, TrayConfig
from .ui import HealthClockWidget

logger = logging.getLogger(__name__)


class HealthClockApp:
    def __init__(
        self,
        root: tk.Tk,
        *,
        store: Optional[SettingsStore] = None,
        notifier: Optional[Notifier] = None,
        engine_config: Optional[EngineConfig] = None,
        tray_factory: Optional[Callable[..., SystemTrayManager]] = None,
    ) -> None:
        self.root = root
        self.root.title("Health Clock")
        self.root.geometry("420x430")

        self.store = store or SettingsStore()
        self.settings: PhaseSettings = self.store.load()
        self.notifier = notifier or AudioNotifier()
        self.engine = PhaseStateMachine(
            TkScheduler(root),
            self.notifier,
            lambda: self.settings,
            cfg=engine_config,
        )

        self.widget = HealthClockWidget(root, self.engine, self.settings, self._on_settings_change)
        self.widget.pack(fill=tk.BOTH, expand=True)

        self.tray_manager: Optional[SystemTrayManager] = None
        self._window_visible = True
        self._tray_factory = tray_factory
        self._setup_tray()

        self.root.protocol("WM_DELETE_WINDOW", self.on_close)

    # ----- Settings -----
    def _on_settings_change(self, settings: PhaseSettings) -> None:
        if settings == self.settings:
            return
        self.settings = settings
        self.store.save(settings)

    # ----- Tray -----
    def _setup_tray(self) -> None:
        """Initialize system tray if dependencies are available."""
        if not SystemTrayManager.dependencies_available():
            logger.info("System tray unavailable (pystray/Pillow missing)")
            return
        factory = self._tray_factory or SystemTrayManager
        try:
            self.tray_manager = factory(
                on_toggle_window=self._on_tk(self._toggle_window_visibility),
                on_start=self._on_tk(self.widget.start),
                on_pause=self._on_tk(self.widget.pause),
                on_reset=self._on_tk(self.widget.reset),
                on_exit=self._on_tk(self.on_close),
                config=TrayConfig(),
            )
            self.tray_manager.start()
            self.engine.on_change(self.tray_manager.update_from_session)
        except Exception:
            logger.exception("Failed to start system tray")
            self.tray_manager = None

    def _on_tk(self, fn: Callable[[], None]) -> Callable[[], None]:
        """Wrap a callback so it runs on the Tk thread."""
        def _post() -> None:
            try:
                self.root.after(0, fn)
            except (RuntimeError, tk.TclError) as e:
                logger.debug("Tk loop gone, dropping tray command: %s", e)

        return _post

    def _toggle_window_visibility(self) -> None:
        if self._window_visible:
            self.root.withdraw()
        else:
            self.root.deiconify()
            self.root.lift()
        self._window_visible = not self._window_visible
        if self.tray_manager is not None:
            self.tray_manager.set_window_visibility(self._window_visible)

    # ----- Shutdown -----
    def on_close(self) -> None:
        try:
            self.engine.reset()
        except Exception:
            logger.exception("Engine reset on close failed")
        if self.tray_manager is not None:
            self.tray_manager.stop()
            self.tray_manager = None
        try:
            self.root.destroy()
        except tk.TclError:
            pass


def configure_logging(debug: bool = False) -> None:
    level_name = os.environ.get("HEALTHCLOCK_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if debug:
        logging.getLogger("healthclock").setLevel(logging.DEBUG)


def main(argv: Optional[list[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    configure_logging(debug=any(a in ("--debug", "-d") for a in args))
    root = tk.Tk()
    HealthClockApp(root)
    root.mainloop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
