# ==============================================================================
# Event Ingestion
# ==============================================================================
"""
Validation and normalization of events posted by marketing pages.

Every check runs before the event reaches the repository, so a rejected
payload never leaves a partial record behind. The HTTP layer maps
IngestionError (and pydantic's ValidationError) to 422.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

from pydantic import ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from sitetrack.core.models import CamelModel, EventType, TrackingEvent

logger = logging.getLogger(__name__)

MIN_EXIT_DURATION_MS = 150
MAX_DURATION_MS = 4 * 60 * 60 * 1000

PATH_MAX_LENGTH = 255
LABEL_MAX_LENGTH = 255
REFERRER_MAX_LENGTH = 512
TAG_MAX_LENGTH = 120


class IngestionError(ValueError):
    """Raised when a tracking payload is rejected."""


class TrackingEventIn(CamelModel):
    """Request body of the public ingestion endpoint.

    A client-supplied ``timestamp`` is accepted but ignored; the stored
    timestamp is always assigned by the server.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    session_id: str = Field(..., min_length=8, max_length=191)
    type: EventType
    path: str = Field(..., max_length=PATH_MAX_LENGTH)
    label: Optional[str] = Field(None, max_length=LABEL_MAX_LENGTH)
    duration_ms: Optional[int] = Field(None, ge=0)
    referrer: Optional[str] = Field(None, max_length=REFERRER_MAX_LENGTH)
    utm_source: Optional[str] = Field(None, max_length=TAG_MAX_LENGTH)
    utm_medium: Optional[str] = Field(None, max_length=TAG_MAX_LENGTH)
    timestamp: Optional[datetime] = None

    @field_validator("duration_ms", mode="before")
    @classmethod
    def _whole_number_duration(cls, value: Any) -> Any:
        """Accept integers and whole-number floats (4000.0); reject strings and fractions."""
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("durationMs must be an integer")
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError("durationMs must be an integer")
            return int(value)
        return value


# ==============================================================================
# Normalization helpers
# ==============================================================================


def normalize_path(path: Optional[str]) -> str:
    """
    Reduce a posted path to its pathname.

    Query strings and fragments are dropped, absolute URLs are reduced to
    their path and a leading slash is ensured.

    Examples:
        "/blog/post?utm_source=x#top" -> "/blog/post"
        "https://example.com/blog" -> "/blog"
        "blog" -> "/blog"
        "" -> "/"
    """
    trimmed = (path or "").strip() or "/"
    try:
        pathname = urlsplit(trimmed).path
    except ValueError:
        pathname = re.split(r"[?#]", trimmed, maxsplit=1)[0]
    if not pathname:
        return "/"
    if not pathname.startswith("/"):
        pathname = "/" + pathname
    return pathname[:PATH_MAX_LENGTH]


def truncate(value: Optional[str], max_length: int) -> Optional[str]:
    """Trim and cut a free-text value; blank becomes None."""
    if not value:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    return trimmed[:max_length]


def normalize_tag(value: Optional[str]) -> Optional[str]:
    """Lower-case a utm value; blank becomes None."""
    if not value:
        return None
    normalized = value.strip().lower()
    if not normalized:
        return None
    return normalized[:TAG_MAX_LENGTH]


def clamp_duration(value: Optional[int]) -> Optional[int]:
    """Floor and clamp a dwell time into [0, 4h]."""
    if value is None:
        return None
    return min(max(int(value), 0), MAX_DURATION_MS)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ==============================================================================
# Service
# ==============================================================================


class IngestionService:
    """
    Validates, normalizes and stores tracking events.

    Example:
        service = IngestionService(InMemoryEventRepository())
        service.record_event({"sessionId": "...", "type": "PAGE_VIEW", "path": "/"})
    """

    def __init__(
        self,
        repository,
        clock: Callable[[], datetime] | None = None,
        min_exit_duration_ms: int = MIN_EXIT_DURATION_MS,
    ):
        """
        Initialize the ingestion service.

        Args:
            repository: EventRepository receiving accepted events
            clock: Source of the server-side timestamp (UTC)
            min_exit_duration_ms: Smallest accepted PAGE_EXIT duration
        """
        self._repository = repository
        self._clock = clock or utc_now
        self._min_exit_duration_ms = min_exit_duration_ms

    @staticmethod
    def parse(payload: Any) -> TrackingEventIn:
        """Validate a raw payload (dict or model) against the request schema."""
        if isinstance(payload, TrackingEventIn):
            return payload
        try:
            return TrackingEventIn.model_validate(payload)
        except ValidationError as e:
            raise IngestionError(f"Invalid tracking payload: {e.error_count()} error(s)") from e

    def normalize(self, payload: Any) -> TrackingEvent:
        """
        Turn a payload into an immutable TrackingEvent without storing it.

        Raises:
            IngestionError: If the payload is malformed or violates event rules
        """
        data = self.parse(payload)

        session_id = data.session_id.strip()
        if len(session_id) < 8:
            raise IngestionError("sessionId must have at least 8 non-blank characters")

        duration_ms = None
        if data.type == EventType.PAGE_EXIT:
            if data.duration_ms is None:
                raise IngestionError("PAGE_EXIT requires durationMs")
            if data.duration_ms < self._min_exit_duration_ms:
                raise IngestionError(
                    f"PAGE_EXIT durationMs must be at least {self._min_exit_duration_ms}"
                )
            duration_ms = clamp_duration(data.duration_ms)

        return TrackingEvent(
            session_id=session_id,
            type=data.type,
            path=normalize_path(data.path),
            label=truncate(data.label, LABEL_MAX_LENGTH),
            duration_ms=duration_ms,
            referrer=truncate(data.referrer, REFERRER_MAX_LENGTH),
            utm_source=normalize_tag(data.utm_source),
            utm_medium=normalize_tag(data.utm_medium),
            timestamp=self._clock(),
        )

    def record_event(self, payload: Any) -> TrackingEvent:
        """
        Validate and store one event.

        Storage errors propagate to the caller unchanged.

        Returns:
            The stored event
        """
        event = self.normalize(payload)
        self._repository.save([event])
        logger.debug("Recorded %s on %s (session=%s)", event.type.value, event.path, event.session_id)
        return event
