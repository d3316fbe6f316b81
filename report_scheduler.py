"""
Scheduled Report Delivery
Sends the daily camera status report once a day at a configured time
"""

import threading
import logging
from datetime import datetime
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class ReportScheduler:
    """Background scheduler for the daily report"""

    def __init__(self, daily_report, report_config: Dict):
        self.daily_report = daily_report
        self.running = False
        self.thread = None
        self._stop_event = threading.Event()

        self.daily_report_time = report_config.get('daily_report_time', '08:00')
        self.report_enabled = report_config.get('enabled', True)

        # Track last sent time to avoid duplicates
        self.last_daily_report = None

        logger.info(f"Report Scheduler initialized (daily at {self.daily_report_time}, "
                    f"enabled: {self.report_enabled})")

    def _parse_time(self, time_str: str) -> tuple:
        """HH:MM -> (hour, minute)"""
        try:
            hour, minute = time_str.split(':')
            return int(hour), int(minute)
        except ValueError:
            logger.error(f"Invalid time format: {time_str}, using default 08:00")
            return 8, 0

    def should_send_daily_report(self, now: Optional[datetime] = None) -> bool:
        """Check if it's time to send the daily report"""
        now = now or datetime.now()
        report_hour, report_minute = self._parse_time(self.daily_report_time)

        if now.hour != report_hour or now.minute != report_minute:
            return False

        if self.last_daily_report and self.last_daily_report.date() == now.date():
            return False

        return True

    def send_daily_report(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now()
        result = self.daily_report.send(now)

        if result.get('success'):
            self.last_daily_report = now
            logger.info("✓ Daily report sent")
            return True

        logger.error(f"✗ Failed to send daily report: {result.get('error')}")
        return False

    def _run_loop(self):
        """Checks the clock every 30 seconds until stopped"""
        logger.info("Daily report loop started")

        while not self._stop_event.is_set():
            try:
                if self.should_send_daily_report():
                    self.send_daily_report()
            except Exception as e:
                logger.error(f"Daily report check failed: {e}")

            self._stop_event.wait(30)

        logger.info("Daily report loop stopped")

    def start(self) -> bool:
        """Start the daily report thread"""
        if not self.report_enabled:
            logger.info("Daily report disabled (SCHEDULED_REPORTS_ENABLED=false)")
            return False

        if self.running:
            logger.warning("Daily report scheduler already running")
            return False

        self.running = True
        self._stop_event.clear()
        self.thread = threading.Thread(target=self._run_loop, daemon=True)
        self.thread.start()

        logger.info(f"✓ Daily report scheduled at {self.daily_report_time}")
        return True

    def stop(self):
        """Stop the daily report thread and wait briefly for it to exit"""
        if not self.running:
            return

        self.running = False
        self._stop_event.set()
        if self.thread:
            self.thread.join(timeout=5)

        logger.info("Daily report scheduler stopped")

    def get_status(self) -> dict:
        return {
            'enabled': self.report_enabled,
            'running': self.running,
            'daily_report_time': self.daily_report_time,
            'last_daily_report': self.last_daily_report.isoformat() if self.last_daily_report else None,
        }
