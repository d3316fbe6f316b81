"""
Anti-flap status logging
Decides which camera status observations are significant enough to record
"""

import os
import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Dict, Optional

from camera_models import CameraStatusHistory, LogDecision

logger = logging.getLogger("smart_logging")

CONSECUTIVE_PREFIX = 'consecutive_'

EVENT_TYPES = {
    'online': 'online',
    'offline': 'offline',
    'date_error': 'date_error',
    'error': 'monitor_error',
}


def get_event_type(status: str) -> str:
    """Map a camera status to its event log label"""
    return EVENT_TYPES.get(status, 'status_change')


class StatusHistoryTracker:
    """
    Tracks recent statuses per camera and filters out transient blips

    A camera's first observation is always logged. After that, a status has
    to be seen `consecutive_threshold` times in a row and at least
    `min_log_interval` after the last change/log before it is logged again.

    History is process-local and is lost on restart.
    """

    def __init__(self, consecutive_threshold: Optional[int] = None,
                 min_log_interval: Optional[timedelta] = None):
        if consecutive_threshold is None:
            consecutive_threshold = int(os.getenv('SMART_LOG_CONSECUTIVE_THRESHOLD', '3'))
        if min_log_interval is None:
            min_log_interval = timedelta(seconds=int(os.getenv('SMART_LOG_MIN_INTERVAL_SECONDS', '300')))

        self.consecutive_threshold = consecutive_threshold
        self.min_log_interval = min_log_interval
        self._history: Dict[str, CameraStatusHistory] = {}
        self._lock = threading.Lock()

        logger.info(f"StatusHistoryTracker initialized (threshold: {consecutive_threshold}, "
                    f"min interval: {int(min_log_interval.total_seconds())}s)")

    def decide(self, camera_id: str, current_status: str,
               now: Optional[datetime] = None) -> LogDecision:
        """
        Record an observation and decide whether it should be logged

        Args:
            camera_id: Camera identifier
            current_status: Status classified this cycle
            now: Observation time (defaults to datetime.now())

        Returns:
            LogDecision with should_log and event_type
        """
        now = now or datetime.now()
        event_type = get_event_type(current_status)

        with self._lock:
            history = self._history.get(camera_id)

            if history is None:
                self._history[camera_id] = CameraStatusHistory(
                    camera_id=camera_id,
                    last_status=current_status,
                    consecutive_count=1,
                    last_change=now
                )
                logger.debug(f"[{camera_id}] First observation: {current_status}")
                return LogDecision(True, event_type)

            if history.last_status != current_status:
                logger.debug(f"[{camera_id}] Status changed {history.last_status} -> {current_status}")
                history.last_status = current_status
                history.consecutive_count = 1
                history.last_change = now

                if history.consecutive_count >= self.consecutive_threshold:
                    return LogDecision(True, event_type)
                return LogDecision(False, event_type)

            history.consecutive_count += 1
            elapsed = now - history.last_change

            if (history.consecutive_count >= self.consecutive_threshold
                    and elapsed >= self.min_log_interval):
                logger.debug(f"[{camera_id}] {current_status} held for "
                             f"{history.consecutive_count} checks ({int(elapsed.total_seconds())}s)")
                history.last_change = now
                history.consecutive_count = 0
                return LogDecision(True, f"{CONSECUTIVE_PREFIX}{event_type}")

            return LogDecision(False, event_type)

    def reset(self, camera_id: str) -> bool:
        """
        Forget a camera's history (e.g. after a manual fix)

        Returns:
            True if an entry was removed
        """
        with self._lock:
            removed = self._history.pop(camera_id, None) is not None

        if removed:
            logger.info(f"Reset status history for camera {camera_id}")
        return removed

    def reset_all(self):
        with self._lock:
            self._history.clear()
        logger.info("Reset status history for all cameras")

    def get_history(self, camera_id: str) -> Optional[CameraStatusHistory]:
        """Copy of a camera's history entry, or None"""
        with self._lock:
            history = self._history.get(camera_id)
            return replace(history) if history else None

    def __len__(self):
        with self._lock:
            return len(self._history)
