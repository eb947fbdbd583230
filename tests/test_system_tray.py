"""
Tests for the Health Clock system tray

These run without a tray backend: pystray and Pillow are patched where
a test needs them.

Usage:
    python -m pytest tests/test_system_tray.py -v
"""

# pyright: reportPrivateUsage=false, reportUnknownMemberType=false, reportUnknownArgumentType=false, reportMissingTypeStubs=false

import os
import sys
import threading
import unittest
from typing import Any
from unittest.mock import MagicMock, Mock, patch

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from healthclock.session import Phase, ReminderKind, ReminderState, TimerSession
from healthclock.system_tray import (
    SystemTrayManager,
    TrayConfig,
    TrayIconGenerator,
    TrayState,
)


def make_session(phase: Phase = Phase.WORKING, remaining: int = 90, running: bool = True,
                 reminder: bool = False) -> TimerSession:
    session = TimerSession(phase=phase, remaining_seconds=remaining, running=running)
    if reminder:
        session.reminder = ReminderState(kind=ReminderKind.WORK, limit=3)
    return session


class TestTrayConfig(unittest.TestCase):
    """Test TrayConfig dataclass"""

    def test_default_config(self):
        config = TrayConfig()

        self.assertEqual(config.icon_size, 64)
        self.assertEqual(config.icon_padding, 8)
        self.assertEqual(config.color_working, (59, 130, 246, 255))  # Blue
        self.assertEqual(config.color_resting, (34, 197, 94, 255))  # Green
        self.assertEqual(config.color_reminder, (231, 76, 60, 255))  # Red

    def test_custom_config(self):
        config = TrayConfig(icon_size=32, color_working=(0, 0, 255, 255))

        self.assertEqual(config.icon_size, 32)
        self.assertEqual(config.color_working, (0, 0, 255, 255))


class TestTrayState(unittest.TestCase):
    """Test TrayState dataclass"""

    def test_default_state(self):
        state = TrayState()

        self.assertIs(state.phase, Phase.IDLE)
        self.assertFalse(state.running)
        self.assertFalse(state.reminder_active)
        self.assertEqual(state.remaining_seconds, 0)
        self.assertTrue(state.window_visible)


class TestTrayIconGenerator(unittest.TestCase):
    """Test icon generation"""

    def setUp(self):
        self.config = TrayConfig()
        self.generator = TrayIconGenerator(self.config)

    def test_icon_generator_init(self):
        self.assertEqual(self.generator.config, self.config)
        self.assertEqual(len(self.generator._icon_cache), 0)

    def test_get_state_color_idle(self):
        color = self.generator._get_state_color(TrayState())
        self.assertEqual(color, self.config.color_idle)

    def test_get_state_color_working(self):
        color = self.generator._get_state_color(TrayState(phase=Phase.WORKING, running=True))
        self.assertEqual(color, self.config.color_working)

    def test_get_state_color_resting(self):
        color = self.generator._get_state_color(TrayState(phase=Phase.RESTING))
        self.assertEqual(color, self.config.color_resting)

    def test_reminder_color_wins_over_phase(self):
        state = TrayState(phase=Phase.RESTING, reminder_active=True)
        self.assertEqual(self.generator._get_state_color(state), self.config.color_reminder)

    @patch('healthclock.system_tray.Image')
    @patch('healthclock.system_tray.ImageDraw')
    def test_create_icon_with_pil(self, mock_draw: Any, mock_image: Any):
        mock_img = MagicMock()
        mock_image.new.return_value = mock_img
        mock_draw_obj = MagicMock()
        mock_draw.Draw.return_value = mock_draw_obj

        state = TrayState(phase=Phase.WORKING, running=True)
        result = self.generator.create_icon(state)

        mock_image.new.assert_called_once()
        mock_draw.Draw.assert_called_once()
        # Phase circle plus the running dot
        self.assertEqual(mock_draw_obj.ellipse.call_count, 2)
        self.assertEqual(result, mock_img)

        # Same visual state comes from the cache
        self.assertIs(self.generator.create_icon(state), mock_img)
        mock_image.new.assert_called_once()

    @patch('healthclock.system_tray.Image')
    @patch('healthclock.system_tray.ImageDraw')
    def test_paused_icon_has_no_dot(self, mock_draw: Any, mock_image: Any):
        mock_draw_obj = MagicMock()
        mock_draw.Draw.return_value = mock_draw_obj

        self.generator.create_icon(TrayState(phase=Phase.WORKING, running=False))
        self.assertEqual(mock_draw_obj.ellipse.call_count, 1)

    def test_create_icon_without_pil(self):
        with patch('healthclock.system_tray.Image', None):
            with patch('healthclock.system_tray.ImageDraw', None):
                generator = TrayIconGenerator(self.config)
                self.assertIsNone(generator.create_icon(TrayState()))

    def test_clear_cache(self):
        self.generator._icon_cache["test"] = "cached_icon"
        self.assertEqual(len(self.generator._icon_cache), 1)

        self.generator.clear_cache()
        self.assertEqual(len(self.generator._icon_cache), 0)


class TestSystemTrayManager(unittest.TestCase):
    """Test SystemTrayManager"""

    def setUp(self):
        self.manager = SystemTrayManager()

    def test_manager_init(self):
        self.assertIsNotNone(self.manager.config)
        self.assertIsNotNone(self.manager.state)
        self.assertIsNotNone(self.manager.icon_generator)
        self.assertIsNone(self.manager._tray_icon)
        self.assertFalse(self.manager.is_running)

    def test_manager_init_with_callbacks(self):
        toggle_cb, start_cb, pause_cb, reset_cb, exit_cb = Mock(), Mock(), Mock(), Mock(), Mock()

        manager = SystemTrayManager(
            on_toggle_window=toggle_cb,
            on_start=start_cb,
            on_pause=pause_cb,
            on_reset=reset_cb,
            on_exit=exit_cb,
        )

        self.assertEqual(manager.on_toggle_window, toggle_cb)
        self.assertEqual(manager.on_start, start_cb)
        self.assertEqual(manager.on_pause, pause_cb)
        self.assertEqual(manager.on_reset, reset_cb)
        self.assertEqual(manager.on_exit, exit_cb)

    def test_dependencies_available(self):
        self.assertIsInstance(SystemTrayManager.dependencies_available(), bool)

    def test_update_from_session(self):
        self.manager.update_from_session(make_session(Phase.RESTING, 42, running=False, reminder=True))

        self.assertIs(self.manager.state.phase, Phase.RESTING)
        self.assertFalse(self.manager.state.running)
        self.assertTrue(self.manager.state.reminder_active)
        self.assertEqual(self.manager.state.remaining_seconds, 42)

    def test_update_pushes_to_live_icon(self):
        icon = Mock()
        self.manager._tray_icon = icon
        with patch.object(self.manager, "_create_menu", return_value="menu"):
            self.manager.update_from_session(make_session(Phase.WORKING, 61))
        self.assertEqual(icon.title, "Health Clock: Working | 01:01")
        self.assertEqual(icon.menu, "menu")

    def test_countdown_tick_only_refreshes_tooltip(self):
        self.manager.update_from_session(make_session(Phase.WORKING, 61))
        icon = Mock()
        self.manager._tray_icon = icon
        with patch.object(self.manager, "_create_menu") as create_menu:
            self.manager.update_from_session(make_session(Phase.WORKING, 60))
        create_menu.assert_not_called()
        self.assertEqual(icon.title, "Health Clock: Working | 01:00")

    def test_set_window_visibility(self):
        self.assertTrue(self.manager.state.window_visible)

        self.manager.set_window_visibility(False)
        self.assertFalse(self.manager.state.window_visible)

        self.manager.set_window_visibility(True)
        self.assertTrue(self.manager.state.window_visible)

    def test_status_text(self):
        self.assertEqual(self.manager._status_text(), "Ready")
        self.manager.update_from_session(make_session(Phase.WORKING, running=True))
        self.assertEqual(self.manager._status_text(), "Working")
        self.manager.update_from_session(make_session(Phase.RESTING, running=False))
        self.assertEqual(self.manager._status_text(), "Resting (paused)")
        self.manager.update_from_session(make_session(Phase.RESTING, 0, running=False, reminder=True))
        self.assertEqual(self.manager._status_text(), "Time's up")

    def test_generate_tooltip(self):
        self.manager.update_from_session(make_session(Phase.WORKING, 3725))
        tooltip = self.manager._generate_tooltip()
        self.assertIn("Working", tooltip)
        self.assertIn("01:02:05", tooltip)

    @patch('healthclock.system_tray.pystray_available', False)
    def test_start_without_pystray(self):
        manager = SystemTrayManager()
        self.assertFalse(manager.start())

    def test_stop_without_start(self):
        self.manager.stop()
        self.assertFalse(self.manager.is_running)

    def test_menu_handlers(self):
        toggle_cb, start_cb, pause_cb, reset_cb, exit_cb = Mock(), Mock(), Mock(), Mock(), Mock()
        manager = SystemTrayManager(
            on_toggle_window=toggle_cb,
            on_start=start_cb,
            on_pause=pause_cb,
            on_reset=reset_cb,
            on_exit=exit_cb,
        )

        manager._menu_toggle_window(None, None)
        toggle_cb.assert_called_once()

        manager._menu_start(None, None)
        start_cb.assert_called_once()

        manager._menu_pause(None, None)
        pause_cb.assert_called_once()

        manager._menu_reset(None, None)
        reset_cb.assert_called_once()

        manager._menu_exit(None, None)
        exit_cb.assert_called_once()

    def test_failing_handler_is_logged(self):
        manager = SystemTrayManager(on_reset=Mock(side_effect=RuntimeError("boom")))
        with self.assertLogs("healthclock.system_tray", level="ERROR"):
            manager._menu_reset(None, None)

    @patch('healthclock.system_tray.Menu')
    @patch('healthclock.system_tray.MenuItem')
    def test_menu_labels_follow_state(self, mock_item: Any, mock_menu: Any):
        def labels() -> dict:
            mock_item.reset_mock()
            self.manager._create_menu()
            return {c.kwargs["text"]: c.kwargs.get("enabled", True) for c in mock_item.call_args_list}

        self.assertIn("Start", labels())
        self.assertIn("Hide Window", labels())

        self.manager.update_from_session(make_session(Phase.WORKING, running=True))
        self.assertIn("Pause", labels())

        self.manager.update_from_session(make_session(Phase.WORKING, running=False))
        self.assertIn("Continue", labels())

        self.manager.update_from_session(make_session(Phase.WORKING, 0, running=False, reminder=True))
        self.assertFalse(labels()["Continue"])

        self.manager.set_window_visibility(False)
        self.assertIn("Show Window", labels())


class TestThreadingBehavior(unittest.TestCase):
    """Test threading and concurrency aspects"""

    def setUp(self):
        self.manager = SystemTrayManager()

    def test_concurrent_session_updates(self):
        def update_worker(phase: Phase) -> None:
            for i in range(20):
                self.manager.update_from_session(make_session(phase, 100 - i))

        threads = [
            threading.Thread(target=update_worker, args=(phase,))
            for phase in (Phase.WORKING, Phase.RESTING, Phase.WORKING)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertIn(self.manager.state.phase, (Phase.WORKING, Phase.RESTING))

    def test_cleanup_on_stop(self):
        self.manager._cleanup()
        self.assertIsNone(self.manager._tray_icon)


if __name__ == "__main__":
    unittest.main(verbosity=2)
