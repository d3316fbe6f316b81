"""
Alert Notification
Delivers rendered alert text to a destination through a chat relay or SMTP
"""

import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict, List, Optional

import requests

from camera_models import Camera, STATUS_DATE_ERROR, STATUS_OFFLINE

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when a transport rejects or fails to deliver a message"""


class Notifier:
    """Sends a pre-rendered text message to a destination"""

    enabled = True

    def send(self, destination: str, text: str) -> bool:
        raise NotImplementedError


class RelayNotifier(Notifier):
    """
    Chat relay client

    The relay exposes POST /send taking {"to": ..., "message": ...} and
    GET /health reporting whether its chat client is connected.
    """

    def __init__(self, base_url: str, timeout: float = 15, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        logger.info(f"Relay notifier initialized ({self.base_url})")

    def send(self, destination: str, text: str) -> bool:
        """
        Send a message through the relay

        Raises:
            NotificationError: relay unreachable or returned an error
        """
        logger.info(f"Sending relay message to {destination}")
        try:
            response = self.session.post(
                f"{self.base_url}/send",
                json={'to': destination, 'message': text},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise NotificationError(f"Relay unreachable: {e}") from e

        if not response.ok:
            try:
                error = response.json().get('error')
            except ValueError:
                error = None
            raise NotificationError(error or f"Relay returned HTTP {response.status_code}")

        logger.info("Relay message sent successfully")
        return True

    def check_status(self) -> Dict:
        """Relay health; never raises"""
        try:
            response = self.session.get(f"{self.base_url}/health", timeout=self.timeout)
            return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Relay health check failed: {e}")
            return {'status': 'error', 'hasClient': False}


class EmailNotifier(Notifier):
    """SMTP transport; destination is a comma-separated address list"""

    def __init__(self, email_config: Dict):
        self.smtp_server = email_config.get('smtp_server', '')
        self.smtp_port = int(email_config.get('smtp_port', 587))
        self.smtp_username = email_config.get('smtp_username', '')
        self.smtp_password = email_config.get('smtp_password', '')
        self.from_email = email_config.get('from_email') or self.smtp_username
        self.from_name = email_config.get('from_name', 'Camera Health Monitor')
        self.default_recipients = list(email_config.get('recipients', []))

        self.enabled = bool(self.smtp_username and self.smtp_password)

        if self.enabled:
            logger.info(f"Email Notifier initialized (SMTP: {self.smtp_server}:{self.smtp_port})")
        else:
            logger.warning("Email Notifier disabled - missing SMTP credentials")

    def _recipients(self, destination: str) -> List[str]:
        recipients = [r.strip() for r in (destination or '').split(',') if r.strip()]
        return recipients or self.default_recipients

    def send(self, destination: str, text: str) -> bool:
        if not self.enabled:
            logger.debug("Email notifications disabled - skipping")
            return False

        recipients = self._recipients(destination)
        if not recipients:
            logger.warning("No email recipients configured")
            return False

        msg = MIMEMultipart()
        msg['Subject'] = text.splitlines()[0] if text else 'Camera Alert'
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = ', '.join(recipients)
        msg.attach(MIMEText(text, 'plain'))

        try:
            with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP delivery failed: {e}") from e

        logger.info(f"Alert email sent to {len(recipients)} recipient(s)")
        return True


def format_camera_alert(camera: Camera, status: str, camera_date: Optional[str] = None,
                        expected_date: Optional[str] = None) -> Optional[str]:
    """
    Render the alert text for a degraded camera

    Returns:
        Message text, or None for statuses that are not alerted
    """
    if status == STATUS_OFFLINE:
        last_online = camera.last_online.strftime('%H:%M:%S') if camera.last_online else '-'
        return (f"CCTV Alert\n"
                f"[OFFLINE] {camera.display_name} ({camera.address})\n"
                f"Status: OFFLINE\n"
                f"Last online: {last_online}")

    if status == STATUS_DATE_ERROR:
        expected_date = expected_date or datetime.now().strftime('%Y-%m-%d')
        return (f"CCTV Alert\n"
                f"[DATE] {camera.display_name} ({camera.address})\n"
                f"Camera date: {camera_date}\n"
                f"Expected: {expected_date}")

    return None


def create_notifier(notify_config: Dict, email_config: Optional[Dict] = None) -> Optional[Notifier]:
    """
    Factory for the configured notification transport

    Returns:
        Notifier instance or None when notifications are disabled
    """
    kind = notify_config.get('notifier', 'relay')
    try:
        if kind == 'relay':
            return RelayNotifier(notify_config['relay_url'], timeout=notify_config.get('timeout', 15))
        if kind == 'email':
            return EmailNotifier(email_config or {})
    except Exception as e:
        logger.error(f"Failed to create {kind} notifier: {e}")
        return None

    logger.info("Notifications disabled")
    return None
