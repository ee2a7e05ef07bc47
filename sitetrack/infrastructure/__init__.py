# ==============================================================================
# Infrastructure Adapters
# ==============================================================================
"""
Adapters for external services (ports-and-adapters architecture).

- repositories/ - Event log adapters (PostgreSQL, in-memory)
- session_store.py - Session identifier storage (Valkey, in-memory)
- transport.py - HTTP event delivery (requests)
- summary_source.py - HTTP summary queries (requests)
"""

from sitetrack.infrastructure.repositories import (
    InMemoryEventRepository,
    PostgreSQLEventRepository,
    check_postgresql_connection,
    get_event_repository,
)
from sitetrack.infrastructure.session_store import (
    InMemorySessionIdStore,
    ValkeySessionIdStore,
    check_valkey_connection,
    get_valkey_client,
)
from sitetrack.infrastructure.summary_source import HttpSummarySource
from sitetrack.infrastructure.transport import HttpEventTransport

__all__ = [
    # Repositories
    "InMemoryEventRepository",
    "PostgreSQLEventRepository",
    "check_postgresql_connection",
    "get_event_repository",
    # Session identity
    "InMemorySessionIdStore",
    "ValkeySessionIdStore",
    "check_valkey_connection",
    "get_valkey_client",
    # HTTP clients
    "HttpEventTransport",
    "HttpSummarySource",
]
