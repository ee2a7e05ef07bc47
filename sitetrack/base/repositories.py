# ==============================================================================
# Repository Abstract Base Classes
# ==============================================================================
"""
Repository ABC for the append-only tracking event log.

This defines the "what" (append events, read a time range) not the "how".
Concrete implementations in infrastructure/ handle the specifics.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable

from sitetrack.core.models import TrackingEvent


class EventRepository(ABC):
    """Repository for ingested tracking events."""

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the data store."""
        ...

    @abstractmethod
    def save(self, events: list[TrackingEvent]) -> int:
        """
        Append events to the log.

        Args:
            events: Validated events to persist

        Returns:
            Count of events saved
        """
        ...

    @abstractmethod
    def fetch(self, since: datetime, until: datetime) -> list[TrackingEvent]:
        """
        Read events with since <= timestamp <= until, oldest first.

        Args:
            since: Inclusive lower bound (timezone-aware)
            until: Inclusive upper bound (timezone-aware)

        Returns:
            Events in timestamp order
        """
        ...

    @abstractmethod
    def fetch_first_attributed_views(
        self, session_ids: Iterable[str], before: datetime
    ) -> list[TrackingEvent]:
        """
        Read the earliest attributed PAGE_VIEW of each session before a cutoff.

        A view is attributed when it carries a non-blank referrer, utm_source
        or utm_medium. Sessions without such a view are absent from the result.

        Args:
            session_ids: Sessions to look up
            before: Exclusive upper bound (timezone-aware)

        Returns:
            At most one event per session
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Close connection and release resources."""
        ...

    def is_healthy(self) -> bool:
        """Check that the store can currently serve reads and writes."""
        return True

    def __enter__(self) -> "EventRepository":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
