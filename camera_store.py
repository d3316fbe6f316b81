"""
Camera Store
Camera records and the append-only camera event log
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from camera_models import Camera

logger = logging.getLogger(__name__)


class CameraStore:
    """Interface the monitoring engine uses to read cameras and record results"""

    def list_cameras(self) -> List[Camera]:
        raise NotImplementedError

    def update_camera_status(self, camera_id: str, status: str, camera_date: Optional[str],
                             last_update: datetime, last_online: Optional[datetime]):
        raise NotImplementedError

    def add_camera(self, camera: Camera):
        raise NotImplementedError

    def set_camera_error(self, camera_id: str, last_update: datetime):
        raise NotImplementedError

    def create_log(self, camera_id: str, event: str, details: Optional[str] = None,
                   timestamp: Optional[datetime] = None):
        raise NotImplementedError


def _to_datetime(value) -> Optional[datetime]:
    """pyodbc returns datetimes, sqlite returns ISO strings"""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


class SqlCameraStore(CameraStore):
    """CameraStore backed by the `cameras` and `camera_logs` tables"""

    CAMERA_COLUMNS = ("id, name, ip, username, password, status, camera_date, "
                      "last_update, last_online, latitude, longitude")

    def __init__(self, db_manager):
        """
        Args:
            db_manager: DatabaseManager instance
        """
        self.db = db_manager

    def _ts(self, value: Optional[datetime]):
        """sqlite3 has no native datetime type, store ISO text there"""
        if value is not None and self.db.dialect_name == 'sqlite':
            return value.isoformat(sep=' ')
        return value

    def ensure_tables_exist(self) -> bool:
        """Create the camera tables if they don't exist"""
        if self.db.dialect_name == 'mssql':
            statements = [
                """
                IF NOT EXISTS (SELECT * FROM sys.tables WHERE name = 'cameras')
                BEGIN
                    CREATE TABLE cameras (
                        id NVARCHAR(64) PRIMARY KEY,
                        name NVARCHAR(100) NULL,
                        ip NVARCHAR(100) NOT NULL,
                        username NVARCHAR(100) NULL,
                        password NVARCHAR(100) NULL,
                        status NVARCHAR(20) NOT NULL DEFAULT 'offline',
                        camera_date NVARCHAR(10) NULL,
                        last_update DATETIME2 NULL,
                        last_online DATETIME2 NULL,
                        latitude FLOAT NULL,
                        longitude FLOAT NULL
                    )
                END
                """,
                """
                IF NOT EXISTS (SELECT * FROM sys.tables WHERE name = 'camera_logs')
                BEGIN
                    CREATE TABLE camera_logs (
                        id INT IDENTITY(1,1) PRIMARY KEY,
                        camera_id NVARCHAR(64) NOT NULL,
                        event NVARCHAR(50) NOT NULL,
                        details NVARCHAR(500) NULL,
                        created_at DATETIME2 NOT NULL DEFAULT GETDATE()
                    )
                END
                """,
            ]
        else:
            statements = [
                """
                CREATE TABLE IF NOT EXISTS cameras (
                    id VARCHAR(64) PRIMARY KEY,
                    name VARCHAR(100),
                    ip VARCHAR(100) NOT NULL,
                    username VARCHAR(100),
                    password VARCHAR(100),
                    status VARCHAR(20) NOT NULL DEFAULT 'offline',
                    camera_date VARCHAR(10),
                    last_update TIMESTAMP,
                    last_online TIMESTAMP,
                    latitude FLOAT,
                    longitude FLOAT
                )
                """,
                """
                CREATE TABLE IF NOT EXISTS camera_logs (
                    id INTEGER PRIMARY KEY,
                    camera_id VARCHAR(64) NOT NULL,
                    event VARCHAR(50) NOT NULL,
                    details VARCHAR(500),
                    created_at TIMESTAMP NOT NULL
                )
                """,
            ]

        try:
            with self.db.get_cursor() as cursor:
                for statement in statements:
                    cursor.execute(statement)
            logger.info("Camera tables verified/created")
            return True
        except Exception as e:
            logger.error(f"Failed to create tables: {e}")
            return False

    def _row_to_camera(self, row) -> Camera:
        return Camera(
            id=str(row[0]),
            name=row[1],
            address=row[2],
            username=row[3],
            password=row[4],
            status=row[5],
            camera_date=row[6],
            last_update=_to_datetime(row[7]),
            last_online=_to_datetime(row[8]),
            latitude=row[9],
            longitude=row[10],
        )

    def list_cameras(self) -> List[Camera]:
        with self.db.get_cursor() as cursor:
            cursor.execute(f"SELECT {self.CAMERA_COLUMNS} FROM cameras ORDER BY name")
            return [self._row_to_camera(row) for row in cursor.fetchall()]

    def get_cameras_by_status(self, status: str) -> List[Camera]:
        with self.db.get_cursor() as cursor:
            cursor.execute(
                f"SELECT {self.CAMERA_COLUMNS} FROM cameras WHERE status = ? ORDER BY name",
                (status,)
            )
            return [self._row_to_camera(row) for row in cursor.fetchall()]

    def count_cameras(self) -> int:
        with self.db.get_cursor() as cursor:
            cursor.execute("SELECT COUNT(*) FROM cameras")
            return int(cursor.fetchone()[0])

    def add_camera(self, camera: Camera):
        with self.db.get_cursor() as cursor:
            cursor.execute(
                f"INSERT INTO cameras ({self.CAMERA_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (camera.id, camera.name, camera.address, camera.username, camera.password,
                 camera.status, camera.camera_date,
                 self._ts(camera.last_update), self._ts(camera.last_online),
                 camera.latitude, camera.longitude)
            )
        logger.info(f"Added camera {camera.id} ({camera.address})")

    def update_camera_status(self, camera_id: str, status: str, camera_date: Optional[str],
                             last_update: datetime, last_online: Optional[datetime]):
        with self.db.get_cursor() as cursor:
            cursor.execute("""
                UPDATE cameras
                SET status = ?, camera_date = ?, last_update = ?, last_online = ?
                WHERE id = ?
            """, (status, camera_date, self._ts(last_update), self._ts(last_online), camera_id))

    def set_camera_error(self, camera_id: str, last_update: datetime):
        with self.db.get_cursor() as cursor:
            cursor.execute(
                "UPDATE cameras SET status = 'error', last_update = ? WHERE id = ?",
                (self._ts(last_update), camera_id)
            )

    def create_log(self, camera_id: str, event: str, details: Optional[str] = None,
                   timestamp: Optional[datetime] = None):
        with self.db.get_cursor() as cursor:
            cursor.execute(
                "INSERT INTO camera_logs (camera_id, event, details, created_at) VALUES (?, ?, ?, ?)",
                (camera_id, event, details, self._ts(timestamp or datetime.now()))
            )

    def get_camera_logs(self, camera_id: str, limit: int = 50) -> List[Dict]:
        """Most recent events for a camera, newest first"""
        with self.db.get_cursor() as cursor:
            cursor.execute("""
                SELECT id, camera_id, event, details, created_at
                FROM camera_logs
                WHERE camera_id = ?
                ORDER BY created_at DESC, id DESC
            """, (camera_id,))
            rows = cursor.fetchmany(limit)

        logs = []
        for row in rows:
            created_at = _to_datetime(row[4])
            logs.append({
                'id': row[0],
                'camera_id': row[1],
                'event': row[2],
                'details': row[3],
                'created_at': created_at.isoformat() if created_at else None,
            })
        return logs
