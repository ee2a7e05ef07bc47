# ==============================================================================
# HTTP Event Transport
# ==============================================================================
"""
requests-based implementation of the EventTransport interface.

Every send runs on its own background thread so the caller never waits on
the network:

- keepalive=False: daemon thread. In-flight requests may be cut off when
  the process exits, the same way a browser cancels ordinary requests on
  page teardown.
- keepalive=True: non-daemon thread. The interpreter waits for it at exit,
  so unload-time flushes complete after the originating context is gone.

All errors are swallowed and logged at DEBUG. No retries, no queuing.
"""

import json
import logging
import threading

import requests

from sitetrack.base.transport import EventTransport
from sitetrack.core.models import EventPayload
from sitetrack.utils.config import get_settings

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


class HttpEventTransport(EventTransport):
    """POSTs event payloads to the public ingestion endpoint."""

    def __init__(self, url: str | None = None, timeout: float | None = None):
        """
        Initialize the transport.

        Args:
            url: Ingestion endpoint URL. If None, uses settings.
            timeout: Request timeout in seconds. If None, uses settings.
        """
        settings = get_settings()
        self._url = url or settings.api.ingest_url
        self._timeout = timeout if timeout is not None else settings.api.request_timeout_seconds
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()

    @property
    def url(self) -> str:
        """Ingestion endpoint URL."""
        return self._url

    def send(self, payload: EventPayload, keepalive: bool = False) -> None:
        """Serialize and deliver one payload in the background."""
        try:
            body = json.dumps(payload.to_json_dict())
            thread = threading.Thread(
                target=self._deliver,
                args=(body, keepalive),
                name=f"sitetrack-send-{payload.type.value.lower()}",
                daemon=not keepalive,
            )
            with self._lock:
                self._threads = [t for t in self._threads if t.is_alive()]
                self._threads.append(thread)
            thread.start()
        except Exception as e:
            logger.debug("Tracking event not sent: %s", e)

    def _deliver(self, body: str, keepalive: bool) -> None:
        try:
            response = requests.post(
                self._url, data=body, headers=JSON_HEADERS, timeout=self._timeout
            )
            response.raise_for_status()
        except Exception as e:
            logger.debug("Tracking event dropped (keepalive=%s): %s", keepalive, e)

    def flush(self, timeout: float | None = None) -> None:
        """Wait for outstanding sends to finish."""
        with self._lock:
            threads = list(self._threads)
        for thread in threads:
            if thread.ident is not None:
                thread.join(timeout)
