"""
Daily Camera Status Report
Summarizes offline and wrong-date cameras and sends it to the alert destination
"""

import logging
from datetime import datetime
from typing import Dict, Optional

from camera_models import STATUS_DATE_ERROR, STATUS_OFFLINE

logger = logging.getLogger(__name__)


class DailyReport:
    """Builds and sends the daily status report"""

    def __init__(self, store, notifier=None, destination: str = ''):
        """
        Args:
            store: SqlCameraStore (or any store with get_cameras_by_status/count_cameras)
            notifier: Notifier used to deliver the report
            destination: Where the report is sent
        """
        self.store = store
        self.notifier = notifier
        self.destination = destination

    def collect(self) -> Dict:
        offline = self.store.get_cameras_by_status(STATUS_OFFLINE)
        date_error = self.store.get_cameras_by_status(STATUS_DATE_ERROR)
        total = self.store.count_cameras()

        return {
            'offline': offline,
            'date_error': date_error,
            'total': total,
            'online': total - len(offline) - len(date_error),
        }

    def build(self, now: Optional[datetime] = None, data: Optional[Dict] = None) -> str:
        """Render the report text"""
        now = now or datetime.now()
        data = data or self.collect()
        today = now.strftime('%Y-%m-%d')

        report = (
            f"*DAILY CCTV REPORT*\n"
            f"Date: {today}\n"
            f"Time: {now.strftime('%H:%M:%S')}\n"
            f"\n*STATISTICS:*\n"
            f"Online: {data['online']}\n"
            f"Offline: {len(data['offline'])}\n"
            f"Wrong date: {len(data['date_error'])}\n"
            f"Total: {data['total']}\n"
        )

        report += "\n*OFFLINE CAMERAS:*\n"
        if not data['offline']:
            report += "- (none)\n"
        for i, cam in enumerate(data['offline'], 1):
            last_online = cam.last_online.strftime('%Y-%m-%d %H:%M:%S') if cam.last_online else 'Never online'
            report += f"{i}. {cam.display_name} ({cam.address})\n   Last online: {last_online}\n"

        report += "\n*WRONG DATE CAMERAS:*\n"
        if not data['date_error']:
            report += "- (none)\n"
        for i, cam in enumerate(data['date_error'], 1):
            report += (f"{i}. {cam.display_name} ({cam.address})\n"
                       f"   Camera date: {cam.camera_date}\n"
                       f"   Expected: {today}\n")

        report += f"\n*Last update:* {now.strftime('%Y-%m-%d %H:%M:%S')}"
        return report

    def send(self, now: Optional[datetime] = None) -> Dict:
        """
        Generate and send the report

        Returns:
            {'success': True, counts...} or {'success': False, 'error': ...}
        """
        try:
            logger.info("Generating daily report...")
            data = self.collect()
            message = self.build(now, data)

            if self.notifier and self.destination:
                if not self.notifier.send(self.destination, message):
                    logger.error("Daily report not delivered by notifier")
                    return {'success': False, 'error': 'Notifier did not deliver the report'}
                logger.info("Daily report sent successfully")
            else:
                logger.warning("Daily report not sent - notifier or destination not configured")

            return {
                'success': True,
                'offline_count': len(data['offline']),
                'date_error_count': len(data['date_error']),
                'total_count': data['total'],
            }

        except Exception as e:
            logger.error(f"Error sending daily report: {e}")
            return {'success': False, 'error': str(e)}
