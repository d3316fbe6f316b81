"""
Camera status classification
"""

from datetime import datetime
from typing import Optional

from camera_models import STATUS_DATE_ERROR, STATUS_OFFLINE, STATUS_ONLINE

DATE_FORMAT = '%Y-%m-%d'


def today_string(now: Optional[datetime] = None) -> str:
    """Reference calendar date for a monitoring cycle, as YYYY-MM-DD"""
    return (now or datetime.now()).strftime(DATE_FORMAT)


def classify(reachable: bool, extracted_date: Optional[str], expected_date: str) -> str:
    """
    Classify one camera observation

    Args:
        reachable: Ping result
        extracted_date: Device date (YYYY-MM-DD) or None when it could not be read
        expected_date: Reference date for the cycle (YYYY-MM-DD)

    Returns:
        'offline', 'online' or 'date_error'
    """
    if not reachable:
        return STATUS_OFFLINE
    if not extracted_date:
        return STATUS_ONLINE
    if extracted_date == expected_date:
        return STATUS_ONLINE
    return STATUS_DATE_ERROR
