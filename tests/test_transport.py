# ==============================================================================
# Tests for the HTTP Event Transport
# ==============================================================================
"""
Unit tests for HttpEventTransport.

Tests cover:
- JSON body with camelCase keys and no null fields
- Daemon vs non-daemon delivery threads (keepalive)
- Errors from the network never reaching the caller
- flush() waiting for outstanding sends

requests.post is patched, so no sockets are opened.
"""

import json
from unittest.mock import MagicMock, patch

import requests

from sitetrack.core.models import EventPayload, EventType
from sitetrack.infrastructure.transport import HttpEventTransport

URL = "http://tracking.test/v1/public/tracking/events"


def _payload(**overrides) -> EventPayload:
    fields = {"session_id": "session-1234", "type": EventType.PAGE_VIEW, "path": "/"}
    fields.update(overrides)
    return EventPayload(**fields)


class TestSend:
    """Tests for send()."""

    @patch("sitetrack.infrastructure.transport.requests.post")
    def test_posts_camel_case_json(self, mock_post):
        transport = HttpEventTransport(url=URL, timeout=2.0)
        transport.send(_payload(type=EventType.PAGE_EXIT, path="/blog", duration_ms=1200))
        transport.flush(timeout=5)

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args[0] == URL
        assert kwargs["timeout"] == 2.0
        assert kwargs["headers"]["Content-Type"] == "application/json"
        body = json.loads(kwargs["data"])
        assert body == {
            "sessionId": "session-1234",
            "type": "PAGE_EXIT",
            "path": "/blog",
            "durationMs": 1200,
        }

    @patch("sitetrack.infrastructure.transport.threading.Thread")
    def test_keepalive_uses_non_daemon_thread(self, mock_thread):
        transport = HttpEventTransport(url=URL)
        transport.send(_payload(), keepalive=True)
        assert mock_thread.call_args.kwargs["daemon"] is False
        mock_thread.return_value.start.assert_called_once()

    @patch("sitetrack.infrastructure.transport.threading.Thread")
    def test_regular_send_uses_daemon_thread(self, mock_thread):
        transport = HttpEventTransport(url=URL)
        transport.send(_payload())
        assert mock_thread.call_args.kwargs["daemon"] is True

    @patch("sitetrack.infrastructure.transport.requests.post")
    def test_network_error_is_swallowed(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("refused")
        transport = HttpEventTransport(url=URL)
        transport.send(_payload())
        transport.flush(timeout=5)
        mock_post.assert_called_once()

    @patch("sitetrack.infrastructure.transport.requests.post")
    def test_http_error_is_swallowed(self, mock_post):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("422")
        mock_post.return_value = response
        transport = HttpEventTransport(url=URL)
        transport.send(_payload(), keepalive=True)
        transport.flush(timeout=5)
        response.raise_for_status.assert_called_once()

    @patch("sitetrack.infrastructure.transport.threading.Thread")
    def test_thread_start_failure_is_swallowed(self, mock_thread):
        mock_thread.return_value.start.side_effect = RuntimeError("can't start new thread")
        transport = HttpEventTransport(url=URL)
        transport.send(_payload())


class TestConfiguration:
    """Tests for URL resolution."""

    def test_default_url_from_settings(self, monkeypatch):
        monkeypatch.setenv("API_BASE_URL", "https://example.test/")
        transport = HttpEventTransport()
        assert transport.url == "https://example.test/v1/public/tracking/events"
