"""
Data records shared by the monitoring engine, the store and the API
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

STATUS_ONLINE = 'online'
STATUS_OFFLINE = 'offline'
STATUS_DATE_ERROR = 'date_error'
STATUS_ERROR = 'error'

DEGRADED_STATUSES = (STATUS_OFFLINE, STATUS_DATE_ERROR)


@dataclass
class Camera:
    """Snapshot of a camera record as held by the store"""
    id: str
    address: str
    name: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    status: str = STATUS_OFFLINE
    camera_date: Optional[str] = None
    last_update: Optional[datetime] = None
    last_online: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def display_name(self) -> str:
        return self.name or self.address

    def to_dict(self) -> Dict[str, Any]:
        """Public representation (credentials are never exposed)"""
        return {
            'id': self.id,
            'name': self.display_name,
            'ip': self.address,
            'status': self.status,
            'camera_date': self.camera_date,
            'last_update': self.last_update.isoformat() if self.last_update else None,
            'last_online': self.last_online.isoformat() if self.last_online else None,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'has_credentials': bool(self.username and self.password),
        }


@dataclass
class StatusObservation:
    status: str
    reachable: bool
    camera_date: Optional[str] = None


@dataclass
class LogDecision:
    should_log: bool
    event_type: str


@dataclass
class CameraStatusHistory:
    camera_id: str
    last_status: str
    consecutive_count: int
    last_change: datetime


@dataclass
class MonitoringResult:
    camera_id: str
    status: str
    should_log: bool
    event_type: str
    error: bool = False
    camera_date: Optional[str] = None
    status_changed: bool = False
    alert_sent: bool = False
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CycleSummary:
    started_at: datetime
    finished_at: Optional[datetime] = None
    results: List[MonitoringResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.error)

    @property
    def succeeded(self) -> int:
        return self.total - self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'succeeded': self.succeeded,
            'failed': self.failed,
            'started_at': self.started_at.isoformat(),
            'finished_at': self.finished_at.isoformat() if self.finished_at else None,
        }
