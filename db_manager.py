"""
Database Manager for the Camera Health Monitor with Connection Pooling
Pooled SQLAlchemy engine shared by the monitoring workers and the API
"""

import logging
from contextlib import contextmanager
from typing import Dict, Optional
from urllib.parse import quote_plus

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url

logger = logging.getLogger(__name__)


def build_odbc_connection_string(db_config: Dict) -> str:
    """SQL Server ODBC connection string from DB_CONFIG values"""
    return (
        f"DRIVER={{{db_config['driver']}}};"
        f"SERVER={db_config['server']},1433;"
        f"DATABASE={db_config['database']};"
        f"UID={db_config['username']};"
        f"PWD={db_config['password']};"
        f"TrustServerCertificate=yes;"
        f"Connection Timeout={db_config.get('timeout', 30)};"
    )


class DatabaseManager:
    """
    Manages database connections with connection pooling
    Thread-safe and usable from the monitoring worker pool
    """

    def __init__(self, db_config: Dict, use_pooling: Optional[bool] = None):
        """
        Open the engine (or direct connection) described by db_config

        Args:
            db_config: DB_CONFIG dictionary; a non-empty 'url' overrides the SQL Server settings
            use_pooling: Whether to use SQLAlchemy pooling (defaults to db_config['use_pooling'])
        """
        self.db_config = db_config
        self.use_pooling = db_config.get('use_pooling', True) if use_pooling is None else use_pooling
        self.engine = None
        self.conn = None
        self._setup_connection()

    @property
    def url(self) -> str:
        if self.db_config.get('url'):
            return self.db_config['url']
        params = quote_plus(build_odbc_connection_string(self.db_config))
        return f"mssql+pyodbc:///?odbc_connect={params}"

    @property
    def dialect_name(self) -> str:
        return make_url(self.url).get_backend_name()

    def _setup_connection(self):
        """Setup connection pool, or a direct pyodbc connection in legacy mode"""
        try:
            if self.use_pooling:
                pool_options = {}
                if self.dialect_name != 'sqlite':
                    pool_options = {
                        'pool_size': 10,  # Maximum 10 connections in pool
                        'max_overflow': 20,  # Allow 20 additional connections beyond pool_size
                        'pool_timeout': 30,
                        'pool_recycle': 3600,  # Recycle connections after 1 hour
                    }

                self.engine = create_engine(
                    self.url,
                    pool_pre_ping=True,
                    echo=False,
                    **pool_options
                )
                logger.info(f"✓ Database connection pool established ({self.dialect_name})")

            else:
                import pyodbc

                self.conn = pyodbc.connect(build_odbc_connection_string(self.db_config), autocommit=True)
                logger.info(f"✓ Database connection established (driver: {self.db_config['driver']})")

        except Exception as e:
            logger.error(f"Failed to setup database connection: {e}")
            self.engine = None
            self.conn = None
            raise

    @contextmanager
    def get_connection(self):
        """
        Context manager to get a connection from the pool

        Usage:
            with db_manager.get_connection() as conn:
                cursor = conn.cursor()
        """
        if self.use_pooling and self.engine:
            conn = self.engine.raw_connection()
            try:
                yield conn
            finally:
                conn.close()  # Return to pool
        else:
            yield self.conn

    @contextmanager
    def get_cursor(self):
        """
        Context manager to get a cursor; commits when the block succeeds

        Usage:
            with db_manager.get_cursor() as cursor:
                cursor.execute("SELECT ...")
                results = cursor.fetchall()
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()

    def close(self):
        """Release the direct connection and dispose of the pool"""
        try:
            if self.conn:
                self.conn.close()
                self.conn = None
                logger.info("Database connection closed")
        except Exception as e:
            logger.error(f"Error closing database connection: {e}")

        try:
            if self.engine:
                self.engine.dispose()
                logger.info("Database engine disposed")
        except Exception as e:
            logger.error(f"Error disposing database engine: {e}")
