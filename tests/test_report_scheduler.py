"""
Unit tests for the daily report scheduler
"""

import unittest
import sys
import os
from datetime import datetime
from unittest.mock import MagicMock

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from report_scheduler import ReportScheduler


class TestReportScheduler(unittest.TestCase):

    def setUp(self):
        self.daily_report = MagicMock()
        self.daily_report.send.return_value = {'success': True}
        self.scheduler = ReportScheduler(self.daily_report, {'daily_report_time': '08:00', 'enabled': True})

    def tearDown(self):
        self.scheduler.stop()

    def test_due_at_configured_minute(self):
        self.assertTrue(self.scheduler.should_send_daily_report(datetime(2024, 1, 2, 8, 0, 30)))
        self.assertFalse(self.scheduler.should_send_daily_report(datetime(2024, 1, 2, 8, 1)))
        self.assertFalse(self.scheduler.should_send_daily_report(datetime(2024, 1, 2, 7, 59)))

    def test_sent_once_per_day(self):
        self.assertTrue(self.scheduler.send_daily_report(datetime(2024, 1, 2, 8, 0, 0)))
        self.assertFalse(self.scheduler.should_send_daily_report(datetime(2024, 1, 2, 8, 0, 30)))
        self.assertTrue(self.scheduler.should_send_daily_report(datetime(2024, 1, 3, 8, 0, 0)))

    def test_failed_send_is_retried(self):
        self.daily_report.send.return_value = {'success': False, 'error': 'relay down'}
        self.assertFalse(self.scheduler.send_daily_report(datetime(2024, 1, 2, 8, 0, 0)))
        self.assertTrue(self.scheduler.should_send_daily_report(datetime(2024, 1, 2, 8, 0, 30)))

    def test_invalid_time_falls_back_to_default(self):
        scheduler = ReportScheduler(self.daily_report, {'daily_report_time': 'eight'})
        self.assertTrue(scheduler.should_send_daily_report(datetime(2024, 1, 2, 8, 0)))

    def test_start_stop(self):
        self.assertTrue(self.scheduler.start())
        self.assertFalse(self.scheduler.start())
        self.assertTrue(self.scheduler.get_status()['running'])

        self.scheduler.stop()
        self.assertFalse(self.scheduler.get_status()['running'])

    def test_disabled(self):
        scheduler = ReportScheduler(self.daily_report, {'enabled': False})
        self.assertFalse(scheduler.start())

    def test_status(self):
        self.scheduler.send_daily_report(datetime(2024, 1, 2, 8, 0, 0))
        status = self.scheduler.get_status()
        self.assertEqual(status['daily_report_time'], '08:00')
        self.assertEqual(status['last_daily_report'], '2024-01-02T08:00:00')


if __name__ == '__main__':
    unittest.main()
