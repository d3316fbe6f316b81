"""
Continuous Monitoring
Runs monitoring cycles on a recurring background trigger
"""

import logging
import threading
from datetime import datetime
from typing import Dict, Optional

from camera_models import CycleSummary

logger = logging.getLogger("continuous_monitor")


class ContinuousMonitor:
    """
    Recurring trigger around CameraMonitor.run_cycle

    States are stopped/running. start() always passes through stop() first,
    so at most one recurring trigger exists; a cycle lock keeps a cycle from
    overlapping one still in flight from a previous trigger.
    """

    def __init__(self, camera_monitor):
        self.camera_monitor = camera_monitor
        self.interval_seconds = None
        self.thread = None
        self._stop_event = None
        self._state_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._state = {
            'is_running': False,
            'last_run': None,
        }
        self.last_summary: Optional[CycleSummary] = None

    def start(self, interval_seconds: float = 60):
        """Start periodic cycles, running the first one immediately"""
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self.stop()

        with self._state_lock:
            self.interval_seconds = interval_seconds
            self._stop_event = threading.Event()
            self._state['is_running'] = True
            self.thread = threading.Thread(
                target=self._run_loop,
                args=(self._stop_event, interval_seconds),
                name="continuous-monitor",
                daemon=True
            )
            self.thread.start()

        logger.info(f"Starting continuous monitoring every {interval_seconds}s")

    def stop(self):
        """Cancel the recurring trigger; a cycle in flight finishes on its own"""
        with self._state_lock:
            if self._stop_event:
                self._stop_event.set()
                self._stop_event = None
            else:
                logger.debug("No recurring trigger to clear")
            self.thread = None
            was_running = self._state['is_running']
            self._state['is_running'] = False

        if was_running:
            logger.info("Monitoring stopped")

    def force_stop(self):
        """
        Stop and discard the last-run bookkeeping

        A cycle already in flight is not interrupted; when it finishes,
        run_once records it as the last run again.
        """
        logger.warning("Force stopping monitoring")
        self.stop()
        with self._state_lock:
            self._state['last_run'] = None
            self.last_summary = None

    def get_state(self) -> Dict:
        with self._state_lock:
            return dict(self._state)

    def is_running(self) -> bool:
        with self._state_lock:
            return self._state['is_running']

    def run_once(self) -> CycleSummary:
        """Run one cycle now (waits for any cycle already in flight)"""
        with self._cycle_lock:
            summary = self.camera_monitor.run_cycle()

        with self._state_lock:
            self._state['last_run'] = summary.finished_at or datetime.now()
            self.last_summary = summary
        return summary

    def _run_loop(self, stop_event: threading.Event, interval_seconds: float):
        logger.info(f"Monitoring loop started (interval: {interval_seconds}s)")

        while not stop_event.is_set():
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Monitoring cycle failed: {e}", exc_info=True)

            if stop_event.wait(interval_seconds):
                break

        logger.info("Monitoring loop stopped")
