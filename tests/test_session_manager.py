# ==============================================================================
# Tests for the Session Manager
# ==============================================================================
"""
Unit tests for the client-side tracking state machine.

Tests cover:
- Idle/Active transitions on navigation
- PAGE_EXIT flush ordering and the 150 ms noise floor
- Referrer reported only on the first PAGE_VIEW
- utm parameters parsed from the query string
- Visibility/page-hide flushes with keepalive
- Click debounce, target resolution and label precedence
- Lazy session identifier resolution and persistence

All tests use a RecordingTransport and a manual clock, so no threads or
network calls are involved.
"""

import pytest

from sitetrack.core.models import EventType
from sitetrack.core.session_manager import Element, SessionManager
from sitetrack.infrastructure.session_store import InMemorySessionIdStore
from sitetrack.utils.config import TrackingSettings


@pytest.fixture()
def store():
    return InMemorySessionIdStore()


@pytest.fixture()
def manager(transport, store, clock):
    return SessionManager(
        transport,
        store,
        referrer="https://www.google.com/search?q=sitetrack",
        clock=clock,
        id_factory=lambda: "generated-session-1",
    )


# ==============================================================================
# Navigation
# ==============================================================================


class TestNavigation:
    """Tests for navigate() transitions."""

    def test_trackable_path_emits_page_view(self, manager, transport):
        """Navigating to / enters Active and emits one PAGE_VIEW."""
        manager.navigate("/")
        assert manager.active
        assert transport.types == [EventType.PAGE_VIEW]
        payload, keepalive = transport.sent[0]
        assert payload.path == "/"
        assert payload.session_id == "generated-session-1"
        assert keepalive is False

    def test_untracked_path_stays_idle(self, manager, transport):
        """Paths outside the marketing surface emit nothing."""
        manager.navigate("/app/settings")
        assert not manager.active
        assert manager.state.started_at is None
        assert transport.sent == []

    def test_blogroll_is_not_under_blog(self, manager, transport):
        manager.navigate("/blogroll")
        assert transport.sent == []

    def test_same_path_and_query_is_noop(self, manager, transport, clock):
        manager.navigate("/blog", "utm_source=x")
        clock.advance(5000)
        manager.navigate("/blog", "utm_source=x")
        assert transport.types == [EventType.PAGE_VIEW]

    def test_query_change_is_a_navigation(self, manager, transport, clock):
        """A query change on the same path flushes and re-emits a view."""
        manager.navigate("/blog")
        clock.advance(1000)
        manager.navigate("/blog", "page=2")
        assert transport.types == [EventType.PAGE_VIEW, EventType.PAGE_EXIT, EventType.PAGE_VIEW]

    def test_exit_precedes_next_view(self, manager, transport, clock):
        """Root -> blog after 4s: PAGE_VIEW(/), PAGE_EXIT(/, 4000), PAGE_VIEW(/blog)."""
        manager.navigate("/")
        clock.advance(4000)
        manager.navigate("/blog")

        assert transport.types == [EventType.PAGE_VIEW, EventType.PAGE_EXIT, EventType.PAGE_VIEW]
        exit_payload, keepalive = transport.sent[1]
        assert exit_payload.path == "/"
        assert exit_payload.duration_ms == 4000
        assert keepalive is False
        assert transport.payloads[2].path == "/blog"

    def test_short_dwell_is_discarded(self, manager, transport, clock):
        """Dwell under 150 ms produces no PAGE_EXIT."""
        manager.navigate("/")
        clock.advance(149)
        manager.navigate("/blog")
        assert transport.types == [EventType.PAGE_VIEW, EventType.PAGE_VIEW]

    def test_dwell_at_floor_is_reported(self, manager, transport, clock):
        manager.navigate("/")
        clock.advance(150)
        manager.navigate("/blog")
        assert transport.payloads[1].duration_ms == 150

    def test_leaving_to_untracked_path_flushes(self, manager, transport, clock):
        manager.navigate("/blog/post")
        clock.advance(2500)
        manager.navigate("/login")
        assert transport.types == [EventType.PAGE_VIEW, EventType.PAGE_EXIT]
        assert not manager.active

    def test_no_exit_after_idle_page(self, manager, transport, clock):
        manager.navigate("/pricing")
        clock.advance(10_000)
        manager.navigate("/")
        assert transport.types == [EventType.PAGE_VIEW]


class TestAttribution:
    """Tests for referrer and utm reporting."""

    def test_referrer_only_on_first_view(self, manager, transport, clock):
        manager.navigate("/")
        clock.advance(1000)
        manager.navigate("/blog")
        first, second = transport.payloads[0], transport.payloads[2]
        assert first.referrer == "https://www.google.com/search?q=sitetrack"
        assert second.referrer is None

    def test_referrer_not_resent_after_idle_page(self, manager, transport):
        """The first PAGE_VIEW carries the referrer even after an untracked page."""
        manager.navigate("/login")
        manager.navigate("/")
        manager.navigate("/blog")
        assert transport.payloads[0].referrer is not None
        assert transport.payloads[1].referrer is None

    def test_utm_parameters_parsed(self, manager, transport):
        manager.navigate("/blog/launch", "?utm_source=Newsletter&utm_medium=email&x=1")
        payload = transport.payloads[0]
        assert payload.utm_source == "Newsletter"
        assert payload.utm_medium == "email"

    def test_missing_utm_is_none(self, manager, transport):
        manager.navigate("/")
        payload = transport.payloads[0]
        assert payload.utm_source is None
        assert payload.utm_medium is None


# ==============================================================================
# Visibility
# ==============================================================================


class TestHide:
    """Tests for hide() and page_hide()."""

    def test_hide_flushes_with_keepalive(self, manager, transport, clock):
        """Root -> blog -> hidden after 1.2s sends a keepalive PAGE_EXIT for /blog."""
        manager.navigate("/")
        clock.advance(4000)
        manager.navigate("/blog")
        clock.advance(1200)
        manager.hide()

        assert transport.types == [
            EventType.PAGE_VIEW,
            EventType.PAGE_EXIT,
            EventType.PAGE_VIEW,
            EventType.PAGE_EXIT,
        ]
        payload, keepalive = transport.sent[-1]
        assert payload.path == "/blog"
        assert payload.duration_ms == 1200
        assert keepalive is True

    def test_hide_resets_start(self, manager, transport, clock):
        """Time spent hidden is not counted again on the next flush."""
        manager.navigate("/")
        clock.advance(1000)
        manager.hide()
        clock.advance(60_000)
        manager.page_hide()
        assert manager.state.started_at == clock.now
        assert [p.duration_ms for p in transport.payloads if p.type == EventType.PAGE_EXIT] == [
            1000,
            60_000,
        ]

    def test_hide_short_dwell_discarded(self, manager, transport, clock):
        manager.navigate("/")
        clock.advance(100)
        manager.hide()
        assert transport.types == [EventType.PAGE_VIEW]

    def test_hide_while_idle_does_nothing(self, manager, transport, clock):
        manager.navigate("/dashboard")
        clock.advance(5000)
        manager.hide()
        assert transport.sent == []


# ==============================================================================
# Clicks
# ==============================================================================


class TestClicks:
    """Tests for click() handling."""

    def test_click_on_button(self, manager, transport, clock):
        manager.navigate("/")
        clock.advance(500)
        manager.click(Element("button", text="  Start free trial  "))
        payload = transport.payloads[-1]
        assert payload.type == EventType.CLICK
        assert payload.path == "/"
        assert payload.label == "Start free trial"

    def test_debounce_within_200ms(self, manager, transport, clock):
        """Two clicks 50 ms apart produce exactly one CLICK."""
        manager.navigate("/")
        button = Element("button", text="Go")
        manager.click(button)
        clock.advance(50)
        manager.click(button)
        assert transport.types.count(EventType.CLICK) == 1

    def test_click_after_debounce_window(self, manager, transport, clock):
        manager.navigate("/")
        button = Element("button", text="Go")
        manager.click(button)
        clock.advance(200)
        manager.click(button)
        assert transport.types.count(EventType.CLICK) == 2

    def test_click_resolves_ancestor_link(self, manager, transport):
        manager.navigate("/blog")
        link = Element("a", attributes={"href": "/blog/post", "aria-label": "Read post"})
        icon = Element("span", parent=Element("svg", parent=link))
        manager.click(icon)
        assert transport.payloads[-1].label == "Read post"

    def test_click_on_data_track_element(self, manager, transport):
        manager.navigate("/")
        card = Element("div", attributes={"data-track": "", "data-track-label": "pricing-card"})
        manager.click(Element("p", text="Pro plan", parent=card))
        assert transport.payloads[-1].label == "pricing-card"

    def test_click_without_clickable_ancestor_ignored(self, manager, transport):
        manager.navigate("/")
        manager.click(Element("p", text="Just text", parent=Element("div")))
        assert transport.types == [EventType.PAGE_VIEW]

    def test_ignored_click_does_not_start_debounce(self, manager, transport, clock):
        manager.navigate("/")
        manager.click(Element("p", text="nothing"))
        clock.advance(10)
        manager.click(Element("button", text="Go"))
        assert transport.types.count(EventType.CLICK) == 1

    def test_click_while_idle_ignored(self, manager, transport):
        manager.navigate("/settings")
        manager.click(Element("button", text="Save"))
        assert transport.sent == []

    def test_empty_label_is_none(self, manager, transport):
        manager.navigate("/")
        manager.click(Element("button", text="   "))
        assert transport.payloads[-1].label is None


class TestElementLabel:
    """Tests for Element.resolve_label() precedence and truncation."""

    def test_track_label_wins(self):
        element = Element(
            "button",
            attributes={"data-track-label": "cta", "aria-label": "Call to action"},
            text="Click",
        )
        assert element.resolve_label() == "cta"

    def test_aria_label_before_text(self):
        element = Element("button", attributes={"aria-label": "Close"}, text="x")
        assert element.resolve_label() == "Close"

    def test_truncated_to_120(self):
        element = Element("a", text="y" * 300)
        assert len(element.resolve_label()) == 120

    def test_closest_is_inclusive(self):
        button = Element("button")
        assert button.closest() is button


# ==============================================================================
# Session identity
# ==============================================================================


class TestSessionIdentity:
    """Tests for lazy session id resolution."""

    def test_generated_id_is_persisted(self, manager, store):
        manager.navigate("/")
        assert store.get_session_id() == "generated-session-1"

    def test_existing_id_is_reused(self, transport, clock):
        store = InMemorySessionIdStore("stored-session-42")
        manager = SessionManager(transport, store, clock=clock)
        manager.navigate("/")
        assert transport.payloads[0].session_id == "stored-session-42"

    def test_no_id_generated_before_first_event(self, manager, store):
        manager.navigate("/account")
        assert store.get_session_id() is None

    def test_clear_session_starts_new_one(self, transport, store, clock):
        ids = iter(["first-session-id", "second-session-id"])
        manager = SessionManager(transport, store, clock=clock, id_factory=lambda: next(ids))
        manager.navigate("/")
        manager.clear_session()
        assert store.get_session_id() is None
        manager.navigate("/blog")
        assert transport.payloads[-1].session_id == "second-session-id"

    def test_transport_errors_do_not_propagate(self, store, clock):
        class BrokenTransport:
            def send(self, payload, keepalive=False):
                raise RuntimeError("offline")

        manager = SessionManager(BrokenTransport(), store, clock=clock)
        manager.navigate("/")
        assert manager.active


class TestFromSettings:
    """Tests for SessionManager.from_settings()."""

    def test_uses_tracking_settings(self, transport, store, clock):
        tracking = TrackingSettings(tracked_prefixes=["/pricing"], min_duration_ms=1000)
        manager = SessionManager.from_settings(transport, store, tracking=tracking, clock=clock)

        manager.navigate("/pricing/teams")
        clock.advance(500)
        manager.navigate("/blog")

        assert transport.types == [EventType.PAGE_VIEW]
        assert not manager.active

    def test_environment_prefixes(self, transport, store, clock, monkeypatch):
        monkeypatch.setenv("TRACKING_TRACKED_PREFIXES", '["/docs"]')
        manager = SessionManager.from_settings(transport, store, clock=clock)
        manager.navigate("/docs/install")
        assert manager.active
