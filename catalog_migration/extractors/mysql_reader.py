"""Legacy MySQL reader backed by a SQLAlchemy engine (PyMySQL driver)."""

import logging
import time
from typing import Any, List, Mapping, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError

from ..config import MigrationSettings
from ..errors import SourceQueryError, StoreConnectionError, TableMissingError
from .base import BaseReader, Row

logger = logging.getLogger(__name__)

# MySQL server error for a missing relation
ER_NO_SUCH_TABLE = 1146

# MySQL client/server errors that mean the store cannot be reached
CONNECTION_ERROR_CODES = {
    1044,  # ER_DBACCESS_DENIED_ERROR
    1045,  # ER_ACCESS_DENIED_ERROR
    1049,  # ER_BAD_DB_ERROR
    2002,  # CR_CONNECTION_ERROR
    2003,  # CR_CONN_HOST_ERROR
    2005,  # CR_UNKNOWN_HOST
    2006,  # CR_SERVER_GONE_ERROR
    2013,  # CR_SERVER_LOST
}

_MISSING_TABLE_MARKERS = ("doesn't exist", "no such table")


def _error_code(error: DBAPIError) -> Optional[int]:
    orig = getattr(error, "orig", None)
    if orig is not None and orig.args and isinstance(orig.args[0], int):
        return orig.args[0]
    return None


def is_missing_table_error(error: Exception) -> bool:
    """Whether a driver error says the queried relation does not exist."""
    if isinstance(error, DBAPIError) and _error_code(error) == ER_NO_SUCH_TABLE:
        return True
    message = str(getattr(error, "orig", None) or error)
    return any(marker in message for marker in _MISSING_TABLE_MARKERS)


def is_connection_error(error: Exception) -> bool:
    """Whether a driver error means the store is unreachable."""
    if not isinstance(error, DBAPIError):
        return False
    if error.connection_invalidated:
        return True
    return isinstance(error, OperationalError) and _error_code(error) in CONNECTION_ERROR_CODES


class LegacyReader(BaseReader):
    """
    Reads the legacy catalog through a pooled SQLAlchemy engine.

    The engine is long-lived for the run and disposed by ``close``.
    """

    def __init__(self, engine: Engine):
        """
        Initialize the reader.

        Args:
            engine: SQLAlchemy engine connected to the legacy database
        """
        self.engine = engine

    @classmethod
    def from_settings(cls, settings: MigrationSettings) -> "LegacyReader":
        """Create a reader with a connection pool sized from settings."""
        logger.info(
            f"Creating connection pool to {settings.mysql_host}:{settings.mysql_port}/"
            f"{settings.mysql_database}"
        )
        engine = create_engine(
            settings.source_url,
            pool_size=settings.mysql_connection_limit,
            pool_pre_ping=True,
            pool_recycle=3600,
            connect_args={"connect_timeout": settings.mysql_connect_timeout},
        )
        return cls(engine)

    def query(self, sql: str, params: Optional[Mapping[str, Any]] = None, table: str = "") -> List[Row]:
        started = time.monotonic()
        preview = sql if len(sql) <= 100 else f"{sql[:100]}..."
        logger.debug(f"Executing query: {preview}")

        try:
            with self.engine.connect() as conn:
                result = conn.execute(text(sql), dict(params or {}))
                rows = [dict(row._mapping) for row in result]
        except SQLAlchemyError as e:
            if is_missing_table_error(e):
                raise TableMissingError(table or "unknown") from e
            if is_connection_error(e):
                raise StoreConnectionError("source", str(getattr(e, "orig", None) or e)) from e
            raise SourceQueryError(f"Query on {table or 'legacy store'} failed: {e}") from e

        elapsed_ms = (time.monotonic() - started) * 1000
        logger.debug(f"Query completed in {elapsed_ms:.0f}ms, returned {len(rows)} rows")
        return rows

    def ping(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StoreConnectionError("source", str(getattr(e, "orig", None) or e)) from e
        logger.info("Source store connection OK")

    def close(self) -> None:
        logger.info("Closing source connection pool")
        self.engine.dispose()
