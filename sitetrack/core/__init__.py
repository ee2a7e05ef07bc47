# ==============================================================================
# Core Domain Logic
# ==============================================================================
"""
Pure domain logic with no external service dependencies.

This package contains:
- Domain models (TrackingEvent, TrackingSummary, EventType)
- Traffic classification policy
- Aggregation engine (build_summary, resolve_range)
- Query/presentation helpers (filters, trends, insights, CSV)

Modules that drive ports (session_manager, ingestion, dashboard) are imported
directly from their modules.
"""

from sitetrack.core.aggregation import InvalidRangeError, build_summary, resolve_range
from sitetrack.core.classification import TrafficClassifier, TrafficSource, is_trackable_path
from sitetrack.core.models import (
    EventPayload,
    EventType,
    TrackingEvent,
    TrackingPageStat,
    TrackingSummary,
    TrackingTimeseriesPoint,
    TrackingTotals,
)
from sitetrack.core.presentation import (
    compute_trend,
    compute_trends,
    export_pages_csv,
    query_pages,
)

__all__ = [
    "EventPayload",
    "EventType",
    "InvalidRangeError",
    "TrackingEvent",
    "TrackingPageStat",
    "TrackingSummary",
    "TrackingTimeseriesPoint",
    "TrackingTotals",
    "TrafficClassifier",
    "TrafficSource",
    "build_summary",
    "compute_trend",
    "compute_trends",
    "export_pages_csv",
    "is_trackable_path",
    "query_pages",
    "resolve_range",
]
