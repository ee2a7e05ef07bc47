# ==============================================================================
# PostgreSQL Repository Implementation
# ==============================================================================
"""
PostgreSQL implementation of the EventRepository interface.

Provides:
- PostgreSQLEventRepository: append-only inserts and time-range reads on
  {schema}.tracking_events

Connections come from a ThreadedConnectionPool shared by the API worker
threads.
"""

import logging
from datetime import datetime
from typing import Iterable

import psycopg2
from psycopg2.extras import RealDictCursor, execute_batch
from psycopg2.pool import ThreadedConnectionPool

from sitetrack.base.repositories import EventRepository
from sitetrack.core.models import TrackingEvent
from sitetrack.utils.config import Settings, get_settings
from sitetrack.utils.retry import POSTGRES_RETRY_EXCEPTIONS, retry_light, retry_standard

logger = logging.getLogger(__name__)

# Batch size for execute_batch
PAGE_SIZE = 1000

# Connection timeout
CONNECT_TIMEOUT = 10

_EVENT_COLUMNS = (
    "session_id, event_type::text AS event_type, path, label, "
    "duration_ms, referrer, utm_source, utm_medium, event_time"
)


def _add_connect_timeout(conn_string: str) -> str:
    """Add connect_timeout to connection string if not present."""
    if "connect_timeout" not in conn_string:
        separator = "&" if "?" in conn_string else "?"
        return f"{conn_string}{separator}connect_timeout={CONNECT_TIMEOUT}"
    return conn_string


class PostgreSQLEventRepository(EventRepository):
    """
    PostgreSQL implementation of EventRepository.

    Writes use psycopg2.extras.execute_batch(); reads return events ordered
    by event_time, then insertion id.
    """

    def __init__(self, settings: Settings | None = None, max_connections: int = 10):
        """
        Initialize the event repository.

        Args:
            settings: Application settings. If None, uses get_settings().
            max_connections: Upper bound of the connection pool
        """
        self._settings = settings or get_settings()
        self._pool: ThreadedConnectionPool | None = None
        self._schema = self._settings.postgres.schema_name
        self._max_connections = max_connections

    @property
    def schema(self) -> str:
        """Get the database schema name."""
        return self._schema

    def connect(self) -> None:
        """Open the connection pool."""
        conn_string = _add_connect_timeout(self._settings.postgres.connection_string)
        self._pool = ThreadedConnectionPool(1, self._max_connections, conn_string)
        logger.info("PostgreSQLEventRepository connected (schema=%s)", self._schema)

    def _require_pool(self) -> ThreadedConnectionPool:
        if self._pool is None:
            raise RuntimeError("PostgreSQL connection not established. Call connect() first.")
        return self._pool

    @retry_standard(POSTGRES_RETRY_EXCEPTIONS, logger)
    def save(self, events: list[TrackingEvent]) -> int:
        """
        Append events to {schema}.tracking_events.

        Args:
            events: Validated events

        Returns:
            Count of events saved
        """
        pool = self._require_pool()
        if not events:
            return 0

        rows = [
            {
                "session_id": event.session_id,
                "event_type": event.type.value,
                "path": event.path,
                "label": event.label,
                "duration_ms": event.duration_ms,
                "referrer": event.referrer,
                "utm_source": event.utm_source,
                "utm_medium": event.utm_medium,
                "event_time": event.timestamp,
            }
            for event in events
        ]

        conn = pool.getconn()
        broken = False
        try:
            with conn.cursor() as cur:
                execute_batch(
                    cur,
                    f"""
                    INSERT INTO {self._schema}.tracking_events
                        (session_id, event_type, path, label, duration_ms,
                         referrer, utm_source, utm_medium, event_time)
                    VALUES
                        (%(session_id)s, %(event_type)s::{self._schema}.tracking_event_type,
                         %(path)s, %(label)s, %(duration_ms)s,
                         %(referrer)s, %(utm_source)s, %(utm_medium)s, %(event_time)s)
                    """,
                    rows,
                    page_size=PAGE_SIZE,
                )
            conn.commit()
        except POSTGRES_RETRY_EXCEPTIONS:
            broken = True
            raise
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn, close=broken)

        logger.debug("Inserted %d tracking events", len(rows))
        return len(rows)

    def _select(self, query: str, params: tuple) -> list[TrackingEvent]:
        pool = self._require_pool()
        conn = pool.getconn()
        broken = False
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
            conn.rollback()
        except POSTGRES_RETRY_EXCEPTIONS:
            broken = True
            raise
        finally:
            pool.putconn(conn, close=broken)

        return [
            TrackingEvent(
                session_id=row["session_id"],
                type=row["event_type"],
                path=row["path"],
                label=row["label"],
                duration_ms=row["duration_ms"],
                referrer=row["referrer"],
                utm_source=row["utm_source"],
                utm_medium=row["utm_medium"],
                timestamp=row["event_time"],
            )
            for row in rows
        ]

    @retry_light(POSTGRES_RETRY_EXCEPTIONS, logger)
    def fetch(self, since: datetime, until: datetime) -> list[TrackingEvent]:
        """Read events in [since, until], oldest first."""
        return self._select(
            f"""
            SELECT {_EVENT_COLUMNS}
            FROM {self._schema}.tracking_events
            WHERE event_time >= %s AND event_time <= %s
            ORDER BY event_time, id
            """,
            (since, until),
        )

    @retry_light(POSTGRES_RETRY_EXCEPTIONS, logger)
    def fetch_first_attributed_views(
        self, session_ids: Iterable[str], before: datetime
    ) -> list[TrackingEvent]:
        """Earliest attributed PAGE_VIEW per session, using DISTINCT ON."""
        session_ids = list(dict.fromkeys(session_ids))
        if not session_ids:
            return []
        return self._select(
            f"""
            SELECT DISTINCT ON (session_id) {_EVENT_COLUMNS}
            FROM {self._schema}.tracking_events
            WHERE event_type = 'PAGE_VIEW'
              AND session_id = ANY(%s)
              AND event_time < %s
              AND (
                  COALESCE(btrim(referrer), '') <> ''
                  OR COALESCE(btrim(utm_source), '') <> ''
                  OR COALESCE(btrim(utm_medium), '') <> ''
              )
            ORDER BY session_id, event_time, id
            """,
            (session_ids, before),
        )

    def is_healthy(self) -> bool:
        """Run SELECT 1 on a pooled connection."""
        if self._pool is None:
            return False
        conn = None
        broken = False
        try:
            conn = self._pool.getconn()
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
            conn.rollback()
            return True
        except Exception as e:
            broken = True
            logger.warning("PostgreSQL health check failed: %s", e)
            return False
        finally:
            if conn is not None:
                self._pool.putconn(conn, close=broken)

    def close(self) -> None:
        """Close every pooled connection."""
        if self._pool:
            try:
                self._pool.closeall()
                logger.info("PostgreSQLEventRepository connection closed")
            except Exception as e:
                logger.warning("Error closing connection pool: %s", e)
            finally:
                self._pool = None


def check_postgresql_connection(settings: Settings | None = None) -> bool:
    """
    Check if PostgreSQL is reachable.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        settings = settings or get_settings()
        conn_string = _add_connect_timeout(settings.postgres.connection_string)
        conn = psycopg2.connect(conn_string)
        conn.close()
        return True
    except Exception:
        return False
