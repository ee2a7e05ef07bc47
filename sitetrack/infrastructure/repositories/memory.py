# ==============================================================================
# In-Memory Repository Implementation
# ==============================================================================
"""
Process-local EventRepository for tests and single-process demos.

Appends are guarded by a lock so concurrent ingestion requests are safe;
reads take a snapshot and never block writers for long.
"""

import threading
from datetime import datetime
from typing import Iterable

from sitetrack.base.repositories import EventRepository
from sitetrack.core.classification import TrafficClassifier
from sitetrack.core.models import EventType, TrackingEvent


class InMemoryEventRepository(EventRepository):
    """Append-only event log held in a Python list."""

    def __init__(self, events: list[TrackingEvent] | None = None):
        self._events: list[TrackingEvent] = list(events or [])
        self._lock = threading.Lock()

    def connect(self) -> None:
        pass

    def save(self, events: list[TrackingEvent]) -> int:
        with self._lock:
            self._events.extend(events)
        return len(events)

    def fetch(self, since: datetime, until: datetime) -> list[TrackingEvent]:
        with self._lock:
            snapshot = list(self._events)
        selected = [event for event in snapshot if since <= event.timestamp <= until]
        return sorted(selected, key=lambda event: event.timestamp)

    def fetch_first_attributed_views(
        self, session_ids: Iterable[str], before: datetime
    ) -> list[TrackingEvent]:
        wanted = set(session_ids)
        with self._lock:
            snapshot = list(self._events)
        first: dict[str, TrackingEvent] = {}
        for event in sorted(snapshot, key=lambda event: event.timestamp):
            if event.timestamp >= before:
                break
            if (
                event.type == EventType.PAGE_VIEW
                and event.session_id in wanted
                and event.session_id not in first
                and TrafficClassifier.has_attribution(event.referrer, event.utm_source, event.utm_medium)
            ):
                first[event.session_id] = event
        return list(first.values())

    def close(self) -> None:
        pass

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
