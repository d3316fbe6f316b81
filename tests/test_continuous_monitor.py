"""
Unit tests for the recurring monitoring trigger
"""

import unittest
import threading
import sys
import os
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from camera_models import CycleSummary
from continuous_monitor import ContinuousMonitor


class CountingCameraMonitor:

    def __init__(self, fail=False):
        self.runs = 0
        self.fail = fail
        self.ran = threading.Event()
        self.history = None

    def run_cycle(self):
        self.runs += 1
        self.ran.set()
        if self.fail:
            raise RuntimeError("cycle exploded")
        now = datetime.now()
        return CycleSummary(started_at=now, finished_at=now)


class TestContinuousMonitor(unittest.TestCase):

    def setUp(self):
        self.camera_monitor = CountingCameraMonitor()
        self.monitor = ContinuousMonitor(self.camera_monitor)

    def tearDown(self):
        self.monitor.stop()

    def test_initial_state(self):
        self.assertEqual(self.monitor.get_state(), {'is_running': False, 'last_run': None})

    def test_start_runs_first_cycle_immediately(self):
        self.monitor.start(3600)
        self.assertTrue(self.camera_monitor.ran.wait(5))
        self.assertTrue(self.monitor.is_running())

    def test_stop(self):
        self.monitor.start(3600)
        self.camera_monitor.ran.wait(5)
        thread = self.monitor.thread

        self.monitor.stop()
        self.assertFalse(self.monitor.is_running())
        thread.join(5)
        self.assertFalse(thread.is_alive())

    def test_restart_leaves_single_trigger(self):
        self.monitor.start(3600)
        first = self.monitor.thread
        self.monitor.start(3600)
        second = self.monitor.thread

        self.assertIsNot(first, second)
        first.join(5)
        self.assertFalse(first.is_alive())
        self.assertTrue(second.is_alive())

    def test_invalid_interval(self):
        with self.assertRaises(ValueError):
            self.monitor.start(0)
        self.assertFalse(self.monitor.is_running())

    def test_run_once_updates_last_run(self):
        summary = self.monitor.run_once()
        self.assertIs(self.monitor.last_summary, summary)
        self.assertEqual(self.monitor.get_state()['last_run'], summary.finished_at)

    def test_force_stop_clears_last_run(self):
        self.monitor.run_once()
        self.monitor.force_stop()
        self.assertEqual(self.monitor.get_state(), {'is_running': False, 'last_run': None})
        self.assertIsNone(self.monitor.last_summary)

    def test_get_state_returns_copy(self):
        state = self.monitor.get_state()
        state['is_running'] = True
        self.assertFalse(self.monitor.is_running())

    def test_failing_cycle_keeps_loop_alive(self):
        camera_monitor = CountingCameraMonitor(fail=True)
        monitor = ContinuousMonitor(camera_monitor)
        try:
            monitor.start(0.01)
            self.assertTrue(camera_monitor.ran.wait(5))
            camera_monitor.ran.clear()
            self.assertTrue(camera_monitor.ran.wait(5))
            self.assertTrue(monitor.is_running())
        finally:
            monitor.stop()


class BlockingCameraMonitor:

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.history = None

    def run_cycle(self):
        self.entered.set()
        self.release.wait(5)
        now = datetime.now()
        return CycleSummary(started_at=now, finished_at=now)


class TestForceStopDuringCycle(unittest.TestCase):

    def test_cycle_in_flight_records_last_run_after_force_stop(self):
        """force_stop does not interrupt a running cycle; it finishes and is recorded"""
        camera_monitor = BlockingCameraMonitor()
        monitor = ContinuousMonitor(camera_monitor)
        worker = threading.Thread(target=monitor.run_once)
        worker.start()
        self.assertTrue(camera_monitor.entered.wait(5))

        monitor.force_stop()
        self.assertIsNone(monitor.get_state()['last_run'])

        camera_monitor.release.set()
        worker.join(5)
        self.assertIsNotNone(monitor.get_state()['last_run'])
        self.assertFalse(monitor.is_running())


if __name__ == '__main__':
    unittest.main()
