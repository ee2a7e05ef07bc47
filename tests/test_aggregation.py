# ==============================================================================
# Tests for the Aggregation Engine
# ==============================================================================
"""
Unit tests for build_summary(), summarize_totals() and resolve_range().

Tests cover:
- Zero-filled daily time series over the whole range
- Time series and totals agreeing on views and clicks
- Per-page stats, ordering and unique visitors
- View-weighted average duration
- Rates bounded to [0, 1]
- Organic / direct / referral attribution with session inheritance
- Range resolution and clamping
"""

from datetime import datetime, timedelta, timezone

import pytest

from sitetrack.core.aggregation import (
    InvalidRangeError,
    build_summary,
    clamp_days,
    resolve_range,
    summarize_totals,
    viewed_sessions,
)
from sitetrack.core.classification import TrafficClassifier
from sitetrack.core.models import EventType, TrackingPageStat
from tests.factories import make_event

SINCE = datetime(2024, 5, 1, tzinfo=timezone.utc)
UNTIL = datetime(2024, 5, 7, 23, 59, 59, 999999, tzinfo=timezone.utc)


def at(day: int, hour: int = 12) -> datetime:
    """Timestamp on day N (1-based) of the test week."""
    return SINCE + timedelta(days=day - 1, hours=hour)


# ==============================================================================
# Time series
# ==============================================================================


class TestTimeseries:
    """Tests for the daily time series."""

    def test_seven_day_scenario(self):
        """10 views on day 1 (3 organic, 7 direct), nothing after."""
        events = [
            make_event(
                EventType.PAGE_VIEW,
                session_id=f"organic-session-{i}",
                referrer="https://www.google.com/",
                when=at(1),
            )
            for i in range(3)
        ] + [
            make_event(EventType.PAGE_VIEW, session_id=f"direct-session-{i}", when=at(1))
            for i in range(7)
        ]

        summary = build_summary(events, SINCE, UNTIL)

        assert len(summary.timeseries) == 7
        first = summary.timeseries[0]
        assert (first.views, first.organic, first.direct) == (10, 3, 7)
        assert first.unique_visitors == 10
        for point in summary.timeseries[1:]:
            assert (point.views, point.clicks, point.organic, point.direct) == (0, 0, 0, 0)
        assert [point.date.day for point in summary.timeseries] == [1, 2, 3, 4, 5, 6, 7]
        assert summary.totals.organic_share == pytest.approx(0.3)

    def test_empty_log(self):
        summary = build_summary([], SINCE, UNTIL)
        assert len(summary.timeseries) == 7
        assert summary.pages == []
        assert summary.totals.views == 0
        assert summary.totals.avg_duration_ms == 0
        assert summary.totals.organic_share == 0

    def test_sums_match_totals(self):
        events = [
            make_event(EventType.PAGE_VIEW, "/", when=at(1)),
            make_event(EventType.PAGE_VIEW, "/blog", when=at(3)),
            make_event(EventType.CLICK, "/blog", label="Read", when=at(3)),
            make_event(EventType.PAGE_VIEW, "/blog/a", when=at(7, 23)),
            make_event(EventType.CLICK, "/", when=at(5)),
            make_event(EventType.PAGE_EXIT, "/", duration_ms=1000, when=at(5)),
        ]
        summary = build_summary(events, SINCE, UNTIL)
        assert sum(point.views for point in summary.timeseries) == summary.totals.views == 3
        assert sum(point.clicks for point in summary.timeseries) == summary.totals.clicks == 2

    def test_events_outside_range_ignored(self):
        events = [
            make_event(EventType.PAGE_VIEW, when=SINCE - timedelta(microseconds=1)),
            make_event(EventType.PAGE_VIEW, when=UNTIL + timedelta(microseconds=1)),
            make_event(EventType.PAGE_VIEW, when=SINCE),
            make_event(EventType.PAGE_VIEW, when=UNTIL),
        ]
        summary = build_summary(events, SINCE, UNTIL)
        assert summary.totals.views == 2
        assert summary.timeseries[0].views == 1
        assert summary.timeseries[-1].views == 1

    def test_unsorted_input(self):
        events = [
            make_event(EventType.PAGE_VIEW, when=at(4)),
            make_event(EventType.PAGE_VIEW, when=at(2)),
        ]
        summary = build_summary(events, SINCE, UNTIL)
        assert [point.views for point in summary.timeseries] == [0, 1, 0, 1, 0, 0, 0]


# ==============================================================================
# Pages
# ==============================================================================


class TestPages:
    """Tests for per-page stats."""

    def test_page_stats(self):
        events = [
            make_event(EventType.PAGE_VIEW, "/blog", session_id="session-one"),
            make_event(EventType.PAGE_VIEW, "/blog", session_id="session-one"),
            make_event(EventType.PAGE_VIEW, "/blog", session_id="session-two"),
            make_event(EventType.CLICK, "/blog", session_id="session-two"),
            make_event(EventType.PAGE_EXIT, "/blog", duration_ms=2000),
            make_event(EventType.PAGE_EXIT, "/blog", duration_ms=4000),
        ]
        summary = build_summary(events, SINCE, UNTIL)
        page = summary.pages[0]
        assert page.path == "/blog"
        assert page.views == 3
        assert page.unique_visitors == 2
        assert page.clicks == 1
        assert page.click_rate == pytest.approx(1 / 3)
        assert page.avg_duration_ms == 3000

    def test_click_only_page_has_zero_rate(self):
        events = [make_event(EventType.CLICK, "/blog/orphan")]
        summary = build_summary(events, SINCE, UNTIL)
        page = summary.pages[0]
        assert page.views == 0
        assert page.click_rate == 0
        assert page.avg_duration_ms == 0

    def test_rates_bounded(self):
        events = [make_event(EventType.PAGE_VIEW, "/")] + [
            make_event(EventType.CLICK, "/") for _ in range(5)
        ]
        summary = build_summary(events, SINCE, UNTIL)
        assert 0 <= summary.pages[0].click_rate <= 1
        assert 0 <= summary.totals.organic_share <= 1

    def test_ordering_views_then_clicks(self):
        events = [
            make_event(EventType.PAGE_VIEW, "/a"),
            make_event(EventType.PAGE_VIEW, "/b"),
            make_event(EventType.CLICK, "/b"),
            make_event(EventType.PAGE_VIEW, "/c"),
            make_event(EventType.PAGE_VIEW, "/c"),
        ]
        summary = build_summary(events, SINCE, UNTIL)
        assert [page.path for page in summary.pages] == ["/c", "/b", "/a"]

    def test_unique_visitors_in_totals_count_any_event(self):
        events = [
            make_event(EventType.PAGE_VIEW, session_id="session-one"),
            make_event(EventType.CLICK, session_id="session-two"),
        ]
        summary = build_summary(events, SINCE, UNTIL)
        assert summary.totals.unique_visitors == 2
        assert summary.pages[0].unique_visitors == 1


# ==============================================================================
# Totals
# ==============================================================================


class TestTotals:
    """Tests for summarize_totals()."""

    def test_weighted_average_duration(self):
        """(1000 * 9 + 10000 * 1) / 10 = 1900, not the plain mean 5500."""
        pages = [
            TrackingPageStat(path="/", views=9, avg_duration_ms=1000),
            TrackingPageStat(path="/blog", views=1, avg_duration_ms=10000),
        ]
        totals = summarize_totals(pages)
        assert totals.avg_duration_ms == 1900

    def test_weighted_average_from_events(self):
        events = (
            [make_event(EventType.PAGE_VIEW, "/") for _ in range(3)]
            + [make_event(EventType.PAGE_VIEW, "/blog")]
            + [
                make_event(EventType.PAGE_EXIT, "/", duration_ms=1000),
                make_event(EventType.PAGE_EXIT, "/blog", duration_ms=5000),
            ]
        )
        summary = build_summary(events, SINCE, UNTIL)
        assert summary.totals.avg_duration_ms == pytest.approx((1000 * 3 + 5000 * 1) / 4)

    def test_zero_views(self):
        totals = summarize_totals([TrackingPageStat(path="/", avg_duration_ms=500)])
        assert totals.avg_duration_ms == 0
        assert totals.organic_share == 0


# ==============================================================================
# Attribution
# ==============================================================================


class TestAttribution:
    """Tests for organic / direct / referral classification."""

    def test_referral_counts_in_views_only(self):
        events = [make_event(EventType.PAGE_VIEW, referrer="https://news.ycombinator.com/")]
        page = build_summary(events, SINCE, UNTIL).pages[0]
        assert (page.views, page.organic_views, page.direct_views) == (1, 0, 0)

    def test_utm_search_campaign_is_organic(self):
        events = [make_event(EventType.PAGE_VIEW, utm_medium="organic")]
        assert build_summary(events, SINCE, UNTIL).pages[0].organic_views == 1

    def test_paid_medium_is_not_organic(self):
        events = [
            make_event(
                EventType.PAGE_VIEW,
                referrer="https://www.google.com/",
                utm_source="google",
                utm_medium="cpc",
            )
        ]
        assert build_summary(events, SINCE, UNTIL).pages[0].organic_views == 0

    def test_later_views_inherit_session_source(self):
        events = [
            make_event(EventType.PAGE_VIEW, "/", referrer="https://www.bing.com/", when=at(1, 10)),
            make_event(EventType.PAGE_VIEW, "/blog", when=at(1, 11)),
        ]
        summary = build_summary(events, SINCE, UNTIL)
        assert summary.timeseries[0].organic == 2
        assert summary.timeseries[0].direct == 0

    def test_custom_classifier(self):
        classifier = TrafficClassifier(search_engines=("kagi.",))
        events = [make_event(EventType.PAGE_VIEW, referrer="https://kagi.com/search")]
        summary = build_summary(events, SINCE, UNTIL, classifier=classifier)
        assert summary.totals.organic_share == 1

    def test_session_source_from_before_range(self):
        """A session that arrived from search before the range stays organic."""
        prior = [
            make_event(EventType.PAGE_VIEW, referrer="https://www.google.com/", when=SINCE - timedelta(days=3))
        ]
        events = [make_event(EventType.PAGE_VIEW, "/pricing", when=at(2))]
        summary = build_summary(events, SINCE, UNTIL, prior_views=prior)
        assert summary.totals.views == 1
        assert summary.pages[0].organic_views == 1
        assert summary.pages[0].direct_views == 0

    def test_earlier_session_source_wins(self):
        prior = [make_event(EventType.PAGE_VIEW, utm_medium="organic", when=SINCE - timedelta(hours=1))]
        events = [
            make_event(EventType.PAGE_VIEW, "/", referrer="https://news.example.com/", when=at(1)),
            make_event(EventType.PAGE_VIEW, "/blog", when=at(1, 13)),
        ]
        pages = {page.path: page for page in build_summary(events, SINCE, UNTIL, prior_views=prior).pages}
        assert pages["/"].organic_views == 0
        assert pages["/blog"].organic_views == 1

    def test_prior_views_inside_range_ignored(self):
        prior = [make_event(EventType.PAGE_VIEW, referrer="https://www.bing.com/", when=at(1))]
        events = [make_event(EventType.PAGE_VIEW, when=at(2))]
        assert build_summary(events, SINCE, UNTIL, prior_views=prior).totals.organic_share == 0

    def test_viewed_sessions(self):
        events = [
            make_event(EventType.CLICK, session_id="session-click"),
            make_event(EventType.PAGE_VIEW, session_id="session-bbbb"),
            make_event(EventType.PAGE_VIEW, session_id="session-aaaa"),
            make_event(EventType.PAGE_VIEW, session_id="session-bbbb"),
        ]
        assert viewed_sessions(events) == ["session-bbbb", "session-aaaa"]


# ==============================================================================
# Range resolution
# ==============================================================================

NOW = datetime(2024, 5, 20, 15, 0, tzinfo=timezone.utc)


class TestResolveRange:
    """Tests for resolve_range()."""

    def test_default_window(self):
        since, until = resolve_range(now=NOW)
        assert since == datetime(2024, 5, 7, tzinfo=timezone.utc)
        assert until.date() == NOW.date()
        assert until.hour == 23

    def test_days_window(self):
        window = resolve_range(days=7, now=NOW)
        assert window.days == 7

    def test_days_clamped(self):
        assert resolve_range(days=365, now=NOW).days == 90
        assert resolve_range(days=0, now=NOW).days == 1

    def test_explicit_dates(self):
        since, until = resolve_range(from_date="2024-05-01", to_date="2024-05-03", now=NOW)
        assert since == datetime(2024, 5, 1, tzinfo=timezone.utc)
        assert until.date().isoformat() == "2024-05-03"

    def test_long_span_keeps_last_days(self):
        window = resolve_range(from_date="2023-01-01", to_date="2024-05-01", now=NOW)
        assert window.days == 90
        assert window.until.date().isoformat() == "2024-05-01"

    def test_from_after_to(self):
        with pytest.raises(InvalidRangeError, match="after"):
            resolve_range(from_date="2024-05-10", to_date="2024-05-01", now=NOW)

    def test_unparsable_date(self):
        with pytest.raises(InvalidRangeError, match="from"):
            resolve_range(from_date="yesterday", now=NOW)

    def test_clamp_days_default(self):
        assert clamp_days(None) == 14
