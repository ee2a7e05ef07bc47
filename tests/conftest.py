# ==============================================================================
# Shared Test Fixtures
# ==============================================================================
"""
Pytest fixtures shared across all test modules.

Provides:
- fakeredis-backed Valkey client (clean state per test)
- In-memory event repository
- Recording transport capturing every sent payload
- Manual millisecond clock for the Session Manager
- Event factory (see tests/factories.py)
"""

import fakeredis
import pytest

from sitetrack.base.transport import EventTransport
from sitetrack.core.models import EventPayload, EventType
from sitetrack.infrastructure.repositories.memory import InMemoryEventRepository
from sitetrack.utils.config import get_settings
from tests.factories import make_event


class RecordingTransport(EventTransport):
    """Transport that keeps (payload, keepalive) pairs instead of sending them."""

    def __init__(self):
        self.sent: list[tuple[EventPayload, bool]] = []

    def send(self, payload: EventPayload, keepalive: bool = False) -> None:
        self.sent.append((payload, keepalive))

    @property
    def payloads(self) -> list[EventPayload]:
        return [payload for payload, _ in self.sent]

    @property
    def types(self) -> list[EventType]:
        return [payload.type for payload, _ in self.sent]


class ManualClock:
    """Millisecond clock advanced explicitly by tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Settings are cached; drop the cache so monkeypatched env vars apply."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def fake_redis():
    """A clean fakeredis instance for each test.

    Uses decode_responses=True to match get_valkey_client().
    """
    server = fakeredis.FakeServer()
    client = fakeredis.FakeRedis(server=server, decode_responses=True)
    yield client
    client.flushall()
    client.close()


@pytest.fixture()
def repository():
    """An empty in-memory event repository."""
    return InMemoryEventRepository()


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def clock():
    return ManualClock()


@pytest.fixture()
def event_factory():
    """Factory fixture for TrackingEvent instances."""
    return make_event
