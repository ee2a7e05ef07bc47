# ==============================================================================
# Aggregation Engine - Pure Domain Logic
# ==============================================================================
"""
Turns a slice of the event log into a TrackingSummary.

build_summary() is a pure function of its inputs: it holds no shared state,
never touches storage and can run concurrently for different queries. It
never raises on an empty or sparse log; every day of the range is present in
the time series, with zeros where nothing happened.

Traffic attribution is per session: a PAGE_VIEW carrying its own referrer or
utm parameters is classified from them, any other PAGE_VIEW inherits the
classification of the earliest attributed view of its session, falling back
to direct. Views recorded before the range are passed in as prior_views, so a
session that arrived from a search engine last week keeps that source.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, NamedTuple, Optional

from sitetrack.core.classification import TrafficClassifier, TrafficSource
from sitetrack.core.models import (
    EventType,
    TrackingEvent,
    TrackingPageStat,
    TrackingSummary,
    TrackingTimeseriesPoint,
    TrackingTotals,
)

DEFAULT_RANGE_DAYS = 14
MAX_RANGE_DAYS = 90


class InvalidRangeError(ValueError):
    """Raised when a summary range cannot be resolved."""


class DateRange(NamedTuple):
    """Inclusive UTC time range of a summary query."""

    since: datetime
    until: datetime

    @property
    def days(self) -> int:
        return (self.until.date() - self.since.date()).days + 1


# ==============================================================================
# Range resolution
# ==============================================================================


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max, tzinfo=timezone.utc)


def _parse_day(value: str, name: str) -> date:
    try:
        return date.fromisoformat(value.strip()[:10])
    except (AttributeError, ValueError) as e:
        raise InvalidRangeError(f"Invalid '{name}' date: {value!r}") from e


def clamp_days(days: Optional[int], default: int = DEFAULT_RANGE_DAYS, maximum: int = MAX_RANGE_DAYS) -> int:
    """Clamp a rolling window length into [1, maximum]."""
    if days is None:
        return default
    return min(max(int(days), 1), maximum)


def resolve_range(
    days: Optional[int] = None,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
    now: Optional[datetime] = None,
    default_days: int = DEFAULT_RANGE_DAYS,
    max_days: int = MAX_RANGE_DAYS,
) -> DateRange:
    """
    Resolve query parameters into an inclusive UTC range.

    Args:
        days: Rolling window length ending today (clamped to 1..max_days)
        from_date: ISO date; the range starts at the beginning of this day
        to_date: ISO date; the range ends at the end of this day (default today)
        now: Reference time (default: current UTC time)
        default_days: Window used when neither days nor from_date is given
        max_days: Longest allowed span; longer spans keep their last max_days

    Returns:
        DateRange(since, until)

    Raises:
        InvalidRangeError: Unparsable dates, or from_date after to_date
    """
    today = _as_utc(now or datetime.now(timezone.utc)).date()

    end_day = _parse_day(to_date, "to") if to_date else today
    until = end_of_day(end_day)

    if from_date:
        start_day = _parse_day(from_date, "from")
        if start_day > end_day:
            raise InvalidRangeError(f"'from' ({start_day}) is after 'to' ({end_day})")
    else:
        window = clamp_days(days, default_days, max_days)
        start_day = end_day - timedelta(days=window - 1)

    if (end_day - start_day).days + 1 > max_days:
        start_day = end_day - timedelta(days=max_days - 1)

    return DateRange(start_of_day(start_day), until)


# ==============================================================================
# Summary
# ==============================================================================


@dataclass
class _PageAccumulator:
    path: str
    views: int = 0
    clicks: int = 0
    organic_views: int = 0
    direct_views: int = 0
    duration_total_ms: int = 0
    duration_samples: int = 0
    sessions: set = field(default_factory=set)

    def to_stat(self) -> TrackingPageStat:
        return TrackingPageStat(
            path=self.path,
            views=self.views,
            unique_visitors=len(self.sessions),
            clicks=self.clicks,
            click_rate=min(self.clicks / self.views, 1.0) if self.views else 0.0,
            avg_duration_ms=(
                self.duration_total_ms / self.duration_samples if self.duration_samples else 0.0
            ),
            organic_views=self.organic_views,
            direct_views=self.direct_views,
        )


@dataclass
class _DayBucket:
    views: int = 0
    clicks: int = 0
    organic: int = 0
    direct: int = 0
    sessions: set = field(default_factory=set)


def viewed_sessions(events: Iterable[TrackingEvent]) -> list[str]:
    """Session ids with at least one PAGE_VIEW, in first-seen order."""
    return list(
        dict.fromkeys(event.session_id for event in events if event.type == EventType.PAGE_VIEW)
    )


def _session_sources(
    events: list[TrackingEvent], classifier: TrafficClassifier
) -> dict[str, TrafficSource]:
    """Classification of the earliest attributed PAGE_VIEW of each session."""
    sources: dict[str, TrafficSource] = {}
    for event in events:
        if event.type != EventType.PAGE_VIEW or event.session_id in sources:
            continue
        if classifier.has_attribution(event.referrer, event.utm_source, event.utm_medium):
            sources[event.session_id] = classifier.classify(
                event.referrer, event.utm_source, event.utm_medium
            )
    return sources


def classify_view(
    event: TrackingEvent,
    session_sources: dict[str, TrafficSource],
    classifier: TrafficClassifier,
) -> TrafficSource:
    """Traffic source of one PAGE_VIEW, falling back to its session's attribution."""
    if classifier.has_attribution(event.referrer, event.utm_source, event.utm_medium):
        return classifier.classify(event.referrer, event.utm_source, event.utm_medium)
    return session_sources.get(event.session_id, TrafficSource.DIRECT)


def build_summary(
    events: Iterable[TrackingEvent],
    since: datetime,
    until: datetime,
    classifier: Optional[TrafficClassifier] = None,
    prior_views: Iterable[TrackingEvent] = (),
) -> TrackingSummary:
    """
    Aggregate events within [since, until] into a TrackingSummary.

    Args:
        events: Events in any order; those outside the range are ignored
        since: Inclusive range start
        until: Inclusive range end
        classifier: Traffic classification policy (default: TrafficClassifier())
        prior_views: Attributed PAGE_VIEWs recorded before since for sessions
            seen in range (see EventRepository.fetch_first_attributed_views).
            They only seed session attribution and are not counted.

    Returns:
        TrackingSummary with one time-series point per UTC day, per-page
        stats ordered by views then clicks (both descending), and totals
    """
    classifier = classifier or TrafficClassifier()
    since = _as_utc(since)
    until = _as_utc(until)

    in_range = sorted(
        (event for event in events if since <= _as_utc(event.timestamp) <= until),
        key=lambda event: _as_utc(event.timestamp),
    )
    earlier = sorted(
        (event for event in prior_views if _as_utc(event.timestamp) < since),
        key=lambda event: _as_utc(event.timestamp),
    )
    session_sources = _session_sources(earlier + in_range, classifier)

    buckets: dict[date, _DayBucket] = {}
    day = since.date()
    while day <= until.date():
        buckets[day] = _DayBucket()
        day += timedelta(days=1)

    pages: dict[str, _PageAccumulator] = {}
    sessions: set[str] = set()
    organic_total = 0

    for event in in_range:
        bucket = buckets.setdefault(_as_utc(event.timestamp).date(), _DayBucket())
        page = pages.get(event.path)
        if page is None:
            page = pages[event.path] = _PageAccumulator(event.path)

        sessions.add(event.session_id)
        bucket.sessions.add(event.session_id)

        if event.type == EventType.PAGE_VIEW:
            bucket.views += 1
            page.views += 1
            page.sessions.add(event.session_id)
            source = classify_view(event, session_sources, classifier)
            if source == TrafficSource.ORGANIC:
                organic_total += 1
                bucket.organic += 1
                page.organic_views += 1
            elif source == TrafficSource.DIRECT:
                bucket.direct += 1
                page.direct_views += 1

        elif event.type == EventType.CLICK:
            bucket.clicks += 1
            page.clicks += 1

        elif event.type == EventType.PAGE_EXIT and event.duration_ms is not None:
            page.duration_total_ms += max(0, event.duration_ms)
            page.duration_samples += 1

    timeseries = [
        TrackingTimeseriesPoint(
            date=day,
            views=bucket.views,
            clicks=bucket.clicks,
            organic=bucket.organic,
            direct=bucket.direct,
            unique_visitors=len(bucket.sessions),
        )
        for day, bucket in sorted(buckets.items())
    ]

    page_stats = sorted(
        (page.to_stat() for page in pages.values()),
        key=lambda stat: (-stat.views, -stat.clicks),
    )

    return TrackingSummary(
        since=since,
        until=until,
        timeseries=timeseries,
        totals=summarize_totals(page_stats, organic_total, len(sessions)),
        pages=page_stats,
    )


def summarize_totals(
    pages: list[TrackingPageStat], organic_views: int = 0, unique_visitors: int = 0
) -> TrackingTotals:
    """
    Range totals from per-page stats.

    avgDurationMs is weighted by page views; organicShare is organic views
    over all views. Both are 0 when there are no views.
    """
    views = sum(page.views for page in pages)
    clicks = sum(page.clicks for page in pages)
    weighted_duration = sum(page.avg_duration_ms * page.views for page in pages)
    return TrackingTotals(
        views=views,
        clicks=clicks,
        avg_duration_ms=weighted_duration / views if views else 0.0,
        organic_share=min(organic_views / views, 1.0) if views else 0.0,
        unique_visitors=unique_visitors,
    )
