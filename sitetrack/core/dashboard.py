# ==============================================================================
# Tracking Dashboard State
# ==============================================================================
"""
State behind the operator dashboard: selected range, path filter, sort order,
the last loaded summary and the error/loading flags.

load() never raises for query failures. It records the error and keeps the
previous summary on screen; refresh() re-runs the current range as a manual
retry.
"""

import logging
from typing import Optional

from sitetrack.base.repositories import EventRepository
from sitetrack.base.summary_source import SummaryQueryError, SummarySource
from sitetrack.core.aggregation import (
    DEFAULT_RANGE_DAYS,
    MAX_RANGE_DAYS,
    InvalidRangeError,
    build_summary,
    resolve_range,
    viewed_sessions,
)
from sitetrack.core.classification import TrafficClassifier
from sitetrack.core.models import TrackingPageStat, TrackingSummary
from sitetrack.core.presentation import (
    INSIGHT_MIN_VIEWS,
    SORT_KEYS,
    Insights,
    Trends,
    build_insights,
    compute_trends,
    export_pages_csv,
    query_pages,
)

logger = logging.getLogger(__name__)

RANGE_PRESETS = {"7": 7, "30": 30, "90": 90}
CUSTOM_RANGE = "custom"


class RepositorySummarySource(SummarySource):
    """Aggregates summaries straight from an EventRepository."""

    def __init__(
        self,
        repository: EventRepository,
        classifier: Optional[TrafficClassifier] = None,
        default_days: int = DEFAULT_RANGE_DAYS,
        max_days: int = MAX_RANGE_DAYS,
    ):
        self._repository = repository
        self._classifier = classifier or TrafficClassifier()
        self._default_days = default_days
        self._max_days = max_days

    def fetch(
        self,
        days: Optional[int] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
    ) -> TrackingSummary:
        try:
            since, until = resolve_range(
                days, from_date, to_date, default_days=self._default_days, max_days=self._max_days
            )
        except InvalidRangeError as e:
            raise SummaryQueryError(str(e)) from e

        try:
            events = self._repository.fetch(since, until)
            prior_views = self._repository.fetch_first_attributed_views(viewed_sessions(events), since)
        except Exception as e:
            logger.warning("Reading tracking events failed: %s", e)
            raise SummaryQueryError(f"Reading tracking events failed: {e}") from e

        return build_summary(events, since, until, self._classifier, prior_views)

    def close(self) -> None:
        self._repository.close()


class TrackingDashboard:
    """
    Dashboard state over a SummarySource.

    Example:
        dashboard = TrackingDashboard(RepositorySummarySource(repo))
        dashboard.select_range("30")
        for page in dashboard.pages:
            ...
    """

    def __init__(
        self,
        source: SummarySource,
        range_key: str = "7",
        path_query: str = "",
        sort_key: str = "views",
        descending: bool = True,
        insight_min_views: int = INSIGHT_MIN_VIEWS,
    ):
        if sort_key not in SORT_KEYS:
            raise ValueError(f"Unknown sort key '{sort_key}'")
        self._source = source
        self.range_key = range_key
        self.custom_from: Optional[str] = None
        self.custom_to: Optional[str] = None
        self.path_query = path_query
        self.sort_key = sort_key
        self.descending = descending
        self.insight_min_views = insight_min_views

        self.summary: Optional[TrackingSummary] = None
        self.error: Optional[str] = None
        self.loading = False

    # ==========================================================================
    # Loading
    # ==========================================================================

    def load(
        self,
        days: Optional[int] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
    ) -> Optional[TrackingSummary]:
        """
        Fetch a summary and make it current.

        Returns:
            The new summary, or None if the query failed (see error)
        """
        self.loading = True
        self.error = None
        try:
            summary = self._source.fetch(days=days, from_date=from_date, to_date=to_date)
        except SummaryQueryError as e:
            logger.info("Tracking summary could not be loaded: %s", e)
            self.error = str(e) or "Tracking summary could not be loaded."
            return None
        finally:
            self.loading = False

        self.summary = summary
        return summary

    def select_range(
        self, range_key: str, from_date: Optional[str] = None, to_date: Optional[str] = None
    ) -> Optional[TrackingSummary]:
        """
        Switch to a preset ("7", "30", "90") or a custom from/to range and load it.

        Selecting "custom" without both dates only changes the selection.
        """
        if range_key != CUSTOM_RANGE and range_key not in RANGE_PRESETS:
            raise ValueError(f"Unknown range '{range_key}'")
        self.range_key = range_key
        if range_key == CUSTOM_RANGE:
            self.custom_from = from_date or self.custom_from
            self.custom_to = to_date or self.custom_to
            if not (self.custom_from and self.custom_to):
                return None
        return self.refresh()

    def refresh(self) -> Optional[TrackingSummary]:
        """Reload the current range."""
        if self.range_key == CUSTOM_RANGE and self.custom_from and self.custom_to:
            return self.load(from_date=self.custom_from, to_date=self.custom_to)
        return self.load(days=RANGE_PRESETS.get(self.range_key, RANGE_PRESETS["7"]))

    # ==========================================================================
    # Derived views
    # ==========================================================================

    def set_sort(self, sort_key: str, descending: Optional[bool] = None) -> None:
        if sort_key not in SORT_KEYS:
            raise ValueError(f"Unknown sort key '{sort_key}'")
        self.sort_key = sort_key
        if descending is not None:
            self.descending = descending

    def toggle_sort_direction(self) -> None:
        self.descending = not self.descending

    @property
    def pages(self) -> list[TrackingPageStat]:
        """Filtered and sorted page stats of the current summary."""
        if self.summary is None:
            return []
        return query_pages(self.summary.pages, self.path_query, self.sort_key, self.descending)

    @property
    def trends(self) -> Optional[Trends]:
        if self.summary is None:
            return None
        return compute_trends(self.summary.timeseries)

    @property
    def insights(self) -> Optional[Insights]:
        if self.summary is None:
            return None
        return build_insights(self.summary, self.insight_min_views)

    @property
    def click_rate(self) -> float:
        """Range-wide clicks per view."""
        if self.summary is None:
            return 0.0
        totals = self.summary.totals
        return totals.clicks / max(totals.views, 1)

    @property
    def source_totals(self) -> dict[str, int]:
        """Organic, direct and total views summed over the time series."""
        totals = {"organic": 0, "direct": 0, "total": 0}
        if self.summary is None:
            return totals
        for point in self.summary.timeseries:
            totals["organic"] += point.organic
            totals["direct"] += point.direct
            totals["total"] += point.views
        return totals

    def export_csv(self) -> str:
        """CSV of the currently visible pages."""
        return export_pages_csv(self.pages)
