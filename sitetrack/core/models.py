# ==============================================================================
# Tracking Domain Models
# ==============================================================================
"""
Pydantic models for tracking events and the analytics summary.

These models are used for:
- Validating ingestion payloads posted by marketing pages
- Serializing events for the HTTP transport
- The summary structure served to the dashboard

Wire names are camelCase (aliases); Python attributes are snake_case.
This module is part of the core domain layer and has no external dependencies
beyond Pydantic.
"""

import datetime as dt
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EventType(str, Enum):
    """Tracking event types."""

    PAGE_VIEW = "PAGE_VIEW"
    PAGE_EXIT = "PAGE_EXIT"
    CLICK = "CLICK"


class CamelModel(BaseModel):
    """Base model serializing to camelCase and accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        """Serialize with camelCase keys, dropping unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class EventPayload(CamelModel):
    """
    Event body sent by the Session Manager to the ingestion endpoint.

    Attributes:
        session_id: Durable per-browsing-context identifier
        type: PAGE_VIEW, PAGE_EXIT or CLICK
        path: Page path the event belongs to
        label: Click label (CLICK only)
        duration_ms: Dwell time in milliseconds (PAGE_EXIT only)
        referrer: Inbound referrer (first PAGE_VIEW of a browsing context only)
        utm_source: utm_source query parameter of the viewed page
        utm_medium: utm_medium query parameter of the viewed page
    """

    session_id: str
    type: EventType
    path: str
    label: Optional[str] = None
    duration_ms: Optional[int] = None
    referrer: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None


class TrackingEvent(EventPayload):
    """An ingested event. Immutable once recorded."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    timestamp: datetime = Field(..., description="UTC time the event was ingested")

    @property
    def day(self) -> dt.date:
        """UTC calendar day of the event."""
        return self.timestamp.date()


class TrackingTimeseriesPoint(CamelModel):
    """One UTC calendar day of activity."""

    date: dt.date
    views: int = 0
    clicks: int = 0
    organic: int = 0
    direct: int = 0
    unique_visitors: int = 0


class TrackingPageStat(CamelModel):
    """Per-path statistics for the whole queried range."""

    path: str
    views: int = 0
    unique_visitors: int = 0
    clicks: int = 0
    click_rate: float = 0.0
    avg_duration_ms: float = 0.0
    organic_views: int = 0
    direct_views: int = 0


class TrackingTotals(CamelModel):
    """Headline figures for the queried range."""

    views: int = 0
    clicks: int = 0
    avg_duration_ms: float = 0.0
    organic_share: float = 0.0
    unique_visitors: int = 0


class TrackingSummary(CamelModel):
    """Aggregated analytics for a date range. Derived per query, never stored."""

    since: datetime
    until: datetime
    timeseries: list[TrackingTimeseriesPoint] = Field(default_factory=list)
    totals: TrackingTotals = Field(default_factory=TrackingTotals)
    pages: list[TrackingPageStat] = Field(default_factory=list)
