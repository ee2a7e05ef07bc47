# ==============================================================================
# Session Manager - Client-Side Tracking State Machine
# ==============================================================================
"""
Per-browsing-context state machine that turns navigation, visibility and
click signals into tracking events.

States:
- Idle: the current path is not part of the tracked marketing surface
- Active: the current path is tracked; holds the entry time and whether the
  inbound referrer has been reported yet

Signals are delivered explicitly (navigate, hide, page_hide, click) by
whatever hosts the manager: a browser shim, a crawler or a test harness.
All state lives on the instance in a SessionState; there are no module
globals, so several managers can run side by side.

Ordering: within one navigate() call the PAGE_EXIT of the previous page is
handed to the transport before the PAGE_VIEW of the next one.
"""

import logging
import time
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Optional
from urllib.parse import parse_qs

from sitetrack.base.session_store import SessionIdStore, generate_session_id
from sitetrack.base.transport import EventTransport
from sitetrack.core.classification import is_trackable_path
from sitetrack.core.models import EventPayload, EventType

logger = logging.getLogger(__name__)

# Dwell times below this are bounces or prefetches, never reported
MIN_DURATION_MS = 150

# Minimum gap between two accepted clicks
CLICK_DEBOUNCE_MS = 200

LABEL_MAX_LENGTH = 120

CLICKABLE_TAGS = ("button", "a")
TRACK_ATTRIBUTE = "data-track"
TRACK_LABEL_ATTRIBUTE = "data-track-label"
ARIA_LABEL_ATTRIBUTE = "aria-label"


def monotonic_ms() -> float:
    """Default clock: monotonic time in milliseconds."""
    return time.monotonic() * 1000.0


@dataclass
class SessionState:
    """
    Mutable state of one Session Manager.

    Attributes:
        current_path: Last navigated path (None before the first navigation)
        current_query: Query string of the last navigation
        active: True while the current path is tracked
        started_at: Clock value when the current page became visible (Active only)
        referrer_reported: True once the first PAGE_VIEW has been emitted
        last_click_at: Clock value of the last accepted click
        session_id: Resolved session identifier (lazily loaded)
    """

    current_path: Optional[str] = None
    current_query: str = ""
    active: bool = False
    started_at: Optional[float] = None
    referrer_reported: bool = False
    last_click_at: Optional[float] = None
    session_id: Optional[str] = None


@dataclass(eq=False)
class Element:
    """Minimal DOM node used to resolve click targets."""

    tag: str
    attributes: dict[str, str] = field(default_factory=dict)
    text: str = ""
    parent: Optional["Element"] = None

    def is_clickable(self) -> bool:
        """Buttons, links and anything explicitly marked as trackable."""
        return self.tag.lower() in CLICKABLE_TAGS or TRACK_ATTRIBUTE in self.attributes

    def closest(
        self, predicate: Callable[["Element"], bool] | None = None
    ) -> Optional["Element"]:
        """Walk up from this node (inclusive) to the first node matching predicate."""
        predicate = predicate or Element.is_clickable
        node: Optional[Element] = self
        while node is not None:
            if predicate(node):
                return node
            node = node.parent
        return None

    def resolve_label(self, max_length: int = LABEL_MAX_LENGTH) -> Optional[str]:
        """
        Resolve the label reported for a click on this node.

        Precedence: data-track-label, then aria-label, then trimmed visible
        text. Blank labels resolve to None.
        """
        label = (
            self.attributes.get(TRACK_LABEL_ATTRIBUTE)
            or self.attributes.get(ARIA_LABEL_ATTRIBUTE)
            or (self.text or "").strip()
        )
        if not label:
            return None
        return label[:max_length]


def _query_param(query: str, name: str) -> Optional[str]:
    values = parse_qs(query.lstrip("?")).get(name)
    if not values:
        return None
    return values[0] or None


class SessionManager:
    """
    Client-side tracking state machine for one browsing context.

    Example:
        manager = SessionManager(transport, InMemorySessionIdStore(), referrer="https://www.google.com/")
        manager.navigate("/")
        manager.navigate("/blog/launch")
        manager.hide()
    """

    def __init__(
        self,
        transport: EventTransport,
        store: SessionIdStore,
        referrer: Optional[str] = None,
        clock: Callable[[], float] = monotonic_ms,
        id_factory: Callable[[], str] = generate_session_id,
        is_trackable: Callable[[str], bool] = is_trackable_path,
        min_duration_ms: int = MIN_DURATION_MS,
        click_debounce_ms: int = CLICK_DEBOUNCE_MS,
        label_max_length: int = LABEL_MAX_LENGTH,
    ):
        """
        Initialize the Session Manager.

        Args:
            transport: Fire-and-forget event delivery
            store: Durable storage for the session identifier
            referrer: Inbound referrer of the browsing context (reported once)
            clock: Millisecond clock
            id_factory: Generator for new session identifiers
            is_trackable: Predicate deciding which paths are tracked
            min_duration_ms: Dwell-time noise floor
            click_debounce_ms: Minimum gap between accepted clicks
            label_max_length: Maximum click label length
        """
        self._transport = transport
        self._store = store
        self._referrer = referrer or None
        self._clock = clock
        self._id_factory = id_factory
        self._is_trackable = is_trackable
        self._min_duration_ms = min_duration_ms
        self._click_debounce_ms = click_debounce_ms
        self._label_max_length = label_max_length
        self.state = SessionState()

    @classmethod
    def from_settings(
        cls,
        transport: EventTransport,
        store: SessionIdStore,
        referrer: Optional[str] = None,
        tracking=None,
        **kwargs,
    ) -> "SessionManager":
        """Build a manager using TrackingSettings (default: get_settings().tracking)."""
        if tracking is None:
            from sitetrack.utils.config import get_settings

            tracking = get_settings().tracking
        prefixes = tuple(tracking.tracked_prefixes)
        return cls(
            transport,
            store,
            referrer=referrer,
            is_trackable=partial(is_trackable_path, prefixes=prefixes),
            min_duration_ms=tracking.min_duration_ms,
            click_debounce_ms=tracking.click_debounce_ms,
            label_max_length=tracking.label_max_length,
            **kwargs,
        )

    @property
    def active(self) -> bool:
        return self.state.active

    # ==========================================================================
    # Session identity
    # ==========================================================================

    def ensure_session(self) -> str:
        """Return the session identifier, generating and persisting one if absent."""
        if self.state.session_id:
            return self.state.session_id

        existing = self._store.get_session_id()
        if existing and existing.strip():
            self.state.session_id = existing
            return existing

        fresh = self._id_factory()
        self._store.set_session_id(fresh)
        self.state.session_id = fresh
        logger.debug("Generated new session id %s", fresh)
        return fresh

    def clear_session(self) -> None:
        """Forget the session identifier; the next event starts a new one."""
        self._store.clear_session_id()
        self.state.session_id = None

    # ==========================================================================
    # Signals
    # ==========================================================================

    def navigate(self, path: str, query: str = "") -> None:
        """
        Handle a navigation to path with the given query string.

        No-op when neither path nor query changed.
        """
        path = path or "/"
        query = query.lstrip("?")
        state = self.state
        if state.current_path == path and state.current_query == query:
            return

        self._flush_duration(keepalive=False)

        state.current_path = path
        state.current_query = query

        if not self._is_trackable(path):
            state.active = False
            state.started_at = None
            return

        state.active = True
        state.started_at = self._clock()

        referrer = None if state.referrer_reported else self._referrer
        self._emit(
            EventPayload(
                session_id=self.ensure_session(),
                type=EventType.PAGE_VIEW,
                path=path,
                referrer=referrer,
                utm_source=_query_param(query, "utm_source"),
                utm_medium=_query_param(query, "utm_medium"),
            )
        )
        state.referrer_reported = True

    def hide(self) -> None:
        """Handle the page becoming hidden (tab backgrounded or closed)."""
        if not self.state.active:
            return
        self._flush_duration(keepalive=True)
        self.state.started_at = self._clock()

    def page_hide(self) -> None:
        """Handle the page being unloaded."""
        self.hide()

    def click(self, target: Element | None) -> None:
        """Handle a click whose innermost target is the given element."""
        state = self.state
        if not state.active or target is None:
            return

        now = self._clock()
        if state.last_click_at is not None and now - state.last_click_at < self._click_debounce_ms:
            return

        clickable = target.closest()
        if clickable is None:
            return

        state.last_click_at = now
        self._emit(
            EventPayload(
                session_id=self.ensure_session(),
                type=EventType.CLICK,
                path=state.current_path or "/",
                label=clickable.resolve_label(self._label_max_length),
            )
        )

    # ==========================================================================
    # Internals
    # ==========================================================================

    def _flush_duration(self, keepalive: bool) -> None:
        state = self.state
        if not state.active or state.started_at is None or not state.current_path:
            return

        duration_ms = int(self._clock() - state.started_at)
        if duration_ms < self._min_duration_ms:
            logger.debug("Discarding %dms dwell on %s", duration_ms, state.current_path)
            return

        self._emit(
            EventPayload(
                session_id=self.ensure_session(),
                type=EventType.PAGE_EXIT,
                path=state.current_path,
                duration_ms=duration_ms,
            ),
            keepalive=keepalive,
        )

    def _emit(self, payload: EventPayload, keepalive: bool = False) -> None:
        try:
            self._transport.send(payload, keepalive=keepalive)
        except Exception as e:
            logger.debug("Transport raised while sending %s: %s", payload.type.value, e)
