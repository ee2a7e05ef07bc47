# ==============================================================================
# Session Identity Store Implementations
# ==============================================================================
"""
Implementations of the SessionIdStore capability.

Provides:
- InMemorySessionIdStore: process-local storage (tests, one-shot crawlers)
- ValkeySessionIdStore: durable storage in Valkey, one key per browsing context

Key format: {session_key_prefix}{context_id}, e.g. sitetrack:session:tab-1
"""

import logging

import redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.retry import Retry

from sitetrack.base.session_store import SessionIdStore
from sitetrack.utils.config import get_settings
from sitetrack.utils.retry import VALKEY_RETRIES

logger = logging.getLogger(__name__)


def get_valkey_client(url: str | None = None) -> redis.Redis:
    """
    Get a Valkey/Redis client connection.

    Configured with:
    - 10 second socket timeouts for fast failure detection
    - 10 automatic retries with exponential backoff for transient failures
    - Health check interval to keep connections alive
    """
    if url is None:
        url = get_settings().valkey.url

    retry = Retry(ExponentialBackoff(cap=32, base=1), retries=VALKEY_RETRIES)

    return redis.from_url(
        url,
        decode_responses=True,
        socket_timeout=10,
        socket_connect_timeout=10,
        retry=retry,
        retry_on_error=[RedisTimeoutError, RedisConnectionError],
        health_check_interval=30,
    )


def check_valkey_connection(url: str | None = None) -> bool:
    """Check if Valkey is reachable."""
    try:
        client = redis.from_url(
            url or get_settings().valkey.url, socket_timeout=5, socket_connect_timeout=5
        )
        client.ping()
        client.close()
        return True
    except Exception:
        return False


class InMemorySessionIdStore(SessionIdStore):
    """Session identifier held in process memory."""

    def __init__(self, session_id: str | None = None):
        self._session_id = session_id

    def get_session_id(self) -> str | None:
        return self._session_id

    def set_session_id(self, session_id: str) -> None:
        self._session_id = session_id

    def clear_session_id(self) -> None:
        self._session_id = None


class ValkeySessionIdStore(SessionIdStore):
    """
    Session identifier persisted in Valkey.

    Survives process restarts, so a crawler or kiosk shim keeps one visitor
    session across runs the way localStorage does in a browser.
    """

    def __init__(
        self,
        context_id: str,
        client: redis.Redis | None = None,
        key_prefix: str | None = None,
    ):
        """
        Initialize the store.

        Args:
            context_id: Browsing context this identifier belongs to
            client: Redis client. If None, uses get_valkey_client().
            key_prefix: Reserved key prefix. If None, uses settings.
        """
        if not context_id:
            raise ValueError("context_id must not be empty")
        self._client = client if client is not None else get_valkey_client()
        prefix = key_prefix if key_prefix is not None else get_settings().valkey.session_key_prefix
        self._key = f"{prefix}{context_id}"

    @property
    def key(self) -> str:
        """Valkey key holding the identifier."""
        return self._key

    def get_session_id(self) -> str | None:
        value = self._client.get(self._key)
        if value is None:
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        value = value.strip()
        return value or None

    def set_session_id(self, session_id: str) -> None:
        self._client.set(self._key, session_id)
        logger.debug("Stored session id under %s", self._key)

    def clear_session_id(self) -> None:
        self._client.delete(self._key)
