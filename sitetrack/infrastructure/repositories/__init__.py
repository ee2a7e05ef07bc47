# ==============================================================================
# Event Log Repository Adapters
# ==============================================================================
"""
Adapters implementing the EventRepository interface from base/repositories.py.

Currently supported:
- PostgreSQL (postgresql.py)
- In-memory (memory.py)
"""

from sitetrack.infrastructure.repositories.memory import InMemoryEventRepository
from sitetrack.infrastructure.repositories.postgresql import (
    PostgreSQLEventRepository,
    check_postgresql_connection,
)
from sitetrack.utils.config import Settings, get_settings

__all__ = [
    "InMemoryEventRepository",
    "PostgreSQLEventRepository",
    "check_postgresql_connection",
    "get_event_repository",
]


def get_event_repository(settings: Settings | None = None):
    """Build the configured (unconnected) event repository."""
    settings = settings or get_settings()
    if settings.repository == "memory":
        return InMemoryEventRepository()
    return PostgreSQLEventRepository(settings)
