"""
Configuration for the Camera Health Monitor
Values are read from the environment (.env supported)
"""

import os
import logging
from datetime import datetime
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


# =============================================================================
# MONITORING
# =============================================================================

MONITOR_CONFIG = {
    "interval_seconds": int(os.getenv("MONITOR_INTERVAL_SECONDS", "60")),
    "max_workers": int(os.getenv("MONITOR_MAX_WORKERS", "0")),
    "ping_timeout": int(os.getenv("PING_TIMEOUT_SECONDS", "2")),
    "ping_overall_timeout": int(os.getenv("PING_OVERALL_TIMEOUT_SECONDS", "5")),
    "scrape_timeout": int(os.getenv("SCRAPE_TIMEOUT_SECONDS", "10")),
    "consecutive_threshold": int(os.getenv("SMART_LOG_CONSECUTIVE_THRESHOLD", "3")),
    "min_log_interval": int(os.getenv("SMART_LOG_MIN_INTERVAL_SECONDS", "300")),
    "autostart": _env_bool("MONITOR_AUTOSTART", "false"),
}

# Database Configuration (SQL Server by default, DB_URL overrides)
DB_CONFIG = {
    "url": os.getenv("DB_URL", ""),
    "server": os.getenv("DB_SERVER", ""),
    "database": os.getenv("DB_DATABASE", "CameraMonitor"),
    "username": os.getenv("DB_USERNAME", ""),
    "password": os.getenv("DB_PASSWORD", ""),
    "driver": os.getenv("DB_DRIVER", "ODBC Driver 18 for SQL Server"),
    "timeout": int(os.getenv("DB_TIMEOUT", "30")),
    "use_pooling": _env_bool("DB_USE_POOLING", "true"),
}

# Notification Configuration
NOTIFY_CONFIG = {
    "notifier": os.getenv("NOTIFIER", "relay").lower(),
    "relay_url": os.getenv("WA_WORKER_URL", "http://localhost:3001").rstrip("/"),
    "destination": os.getenv("ALERT_DESTINATION", os.getenv("WHATSAPP_GROUP_ID", "")),
    "timeout": int(os.getenv("NOTIFY_TIMEOUT_SECONDS", "15")),
}

# Email Configuration
EMAIL_CONFIG = {
    "smtp_server": os.getenv("SMTP_SERVER", "smtp.office365.com"),
    "smtp_port": int(os.getenv("SMTP_PORT", "587")),
    "smtp_username": os.getenv("SMTP_USERNAME", ""),
    "smtp_password": os.getenv("SMTP_PASSWORD", ""),
    "from_email": os.getenv("SMTP_FROM_EMAIL", os.getenv("SMTP_USERNAME", "")),
    "from_name": os.getenv("SMTP_FROM_NAME", "Camera Health Monitor"),
    "recipients": [r.strip() for r in os.getenv("ALERT_EMAIL_RECIPIENTS", "").split(",") if r.strip()],
}

# Scheduled Reports
REPORT_CONFIG = {
    "daily_report_time": os.getenv("DAILY_REPORT_TIME", "08:00"),
    "enabled": _env_bool("SCHEDULED_REPORTS_ENABLED", "true"),
}

# Flask Configuration
FLASK_CONFIG = {
    "host": os.getenv("FLASK_HOST", "0.0.0.0"),
    "port": int(os.getenv("FLASK_PORT", "8080")),
    "debug": _env_bool("FLASK_DEBUG", "false"),
    "cron_secret": os.getenv("CRON_SECRET", ""),
}


# =============================================================================
# LOGGING
# =============================================================================

def setup_logging(log_dir: Path = None, level: int = logging.INFO):
    """
    Configure root logging with a console handler and a dated file handler

    Args:
        log_dir: Directory for log files (defaults to ./logs next to this module)
        level: Root log level
    """
    log_dir = log_dir or Path(__file__).parent / "logs"

    handlers = [logging.StreamHandler()]
    try:
        log_dir.mkdir(exist_ok=True)
        log_file = log_dir / f'camera_monitor_{datetime.now():%Y%m%d}.log'
        handlers.append(logging.FileHandler(log_file, mode='a', encoding='utf-8'))
    except OSError as e:
        print(f"Failed to create file handler: {e}")

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=handlers,
        force=True
    )
