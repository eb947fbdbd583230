import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from healthclock.clock import Clock
from healthclock.scheduling import ManualScheduler


class TestClock(unittest.TestCase):

    def setUp(self):
        self.scheduler = ManualScheduler()
        self.ticks: list[float] = []
        self.clock = Clock(self.scheduler, lambda: self.ticks.append(self.scheduler.now))

    def test_ticks_once_per_second(self):
        self.clock.start()
        self.scheduler.advance(3)
        self.assertEqual(self.ticks, [1.0, 2.0, 3.0])
        self.assertTrue(self.clock.running)

    def test_start_is_idempotent(self):
        self.clock.start()
        self.clock.start()
        self.scheduler.advance(2)
        self.assertEqual(len(self.ticks), 2)

    def test_stop_halts_ticks_and_is_idempotent(self):
        self.clock.start()
        self.scheduler.advance(1.5)
        self.clock.stop()
        self.clock.stop()
        self.scheduler.advance(10)
        self.assertEqual(self.ticks, [1.0])
        self.assertFalse(self.clock.running)
        self.assertEqual(self.scheduler.pending, 0)

    def test_stop_from_inside_tick(self):
        clock = Clock(self.scheduler, lambda: clock.stop())
        clock.start()
        self.scheduler.advance(5)
        self.assertFalse(clock.running)
        self.assertEqual(self.scheduler.pending, 0)

    def test_restart_counts_from_restart_time(self):
        self.clock.start()
        self.scheduler.advance(1.5)
        self.clock.stop()
        self.scheduler.advance(0.25)
        self.clock.start()
        self.scheduler.advance(1.0)
        self.assertEqual(self.ticks, [1.0, 2.75])


class TestManualScheduler(unittest.TestCase):

    def test_runs_due_callbacks_in_order(self):
        s = ManualScheduler()
        seen: list[str] = []
        s.call_later(2, lambda: seen.append("b"))
        s.call_later(1, lambda: seen.append("a"))
        s.call_later(2, lambda: seen.append("c"))
        self.assertEqual(s.advance(1.5), 1)
        self.assertEqual(s.advance(0.5), 2)
        self.assertEqual(seen, ["a", "b", "c"])
        self.assertEqual(s.now, 2.0)

    def test_cancelled_callback_never_runs(self):
        s = ManualScheduler()
        seen: list[int] = []
        h = s.call_later(1, lambda: seen.append(1))
        s.cancel(h)
        s.advance(5)
        self.assertEqual(seen, [])
        self.assertIsNone(s.next_deadline())


if __name__ == "__main__":
    unittest.main()
