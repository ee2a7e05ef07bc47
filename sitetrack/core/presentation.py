# ==============================================================================
# Query / Presentation Helpers
# ==============================================================================
"""
Operator-facing views over a TrackingSummary.

- filter_pages / sort_pages / query_pages: path filter, then stable sort
- compute_trend / compute_trends: first-vs-last deltas over the time series
- build_insights: best click-through page, longest dwell page, organic share
- export_pages_csv: CSV export of page stats (no network involved)
- format_percent / format_duration / format_number: display helpers

Everything here is pure and works on the summary models only.
"""

import csv
import io
import math
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from sitetrack.core.models import TrackingPageStat, TrackingSummary, TrackingTimeseriesPoint

CSV_FILENAME = "tracking-pages.csv"
CSV_MIME_TYPE = "text/csv"
CSV_COLUMNS = (
    "path",
    "views",
    "uniqueVisitors",
    "clicks",
    "clickRate",
    "avgDurationMs",
    "organicViews",
    "directViews",
)

INSIGHT_MIN_VIEWS = 5

SORT_KEYS: dict[str, Callable[[TrackingPageStat], float]] = {
    "views": lambda page: page.views,
    "ctr": lambda page: page.click_rate,
    "duration": lambda page: page.avg_duration_ms,
    "clicks": lambda page: page.clicks,
    "unique": lambda page: page.unique_visitors,
}


# ==============================================================================
# Filtering and sorting
# ==============================================================================


def filter_pages(pages: Iterable[TrackingPageStat], query: Optional[str]) -> list[TrackingPageStat]:
    """Keep pages whose path contains query (case-insensitive). Blank keeps all."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(pages)
    return [page for page in pages if needle in page.path.lower()]


def sort_pages(
    pages: Iterable[TrackingPageStat], key: str = "views", descending: bool = True
) -> list[TrackingPageStat]:
    """
    Sort pages by one metric. Ties keep their prior relative order.

    Raises:
        ValueError: Unknown sort key
    """
    try:
        selector = SORT_KEYS[key]
    except KeyError:
        raise ValueError(f"Unknown sort key '{key}' (expected one of: {', '.join(SORT_KEYS)})")
    return sorted(pages, key=selector, reverse=descending)


def query_pages(
    pages: Iterable[TrackingPageStat],
    query: Optional[str] = None,
    key: str = "views",
    descending: bool = True,
) -> list[TrackingPageStat]:
    """Filter by path, then sort."""
    return sort_pages(filter_pages(pages, query), key, descending)


# ==============================================================================
# Trends
# ==============================================================================


@dataclass(frozen=True)
class Trend:
    """Change between the first and last point of a range."""

    value: int
    pct: float


@dataclass(frozen=True)
class Trends:
    views: Trend
    clicks: Trend
    organic: Trend


def compute_trend(first: int, last: int) -> Trend:
    """
    Delta and relative change from first to last.

    Growth from zero counts as +100%, zero to zero as 0%.
    """
    delta = last - first
    if first:
        pct = delta / first
    else:
        pct = 1.0 if last > 0 else 0.0
    return Trend(value=delta, pct=pct)


def compute_trends(timeseries: Sequence[TrackingTimeseriesPoint]) -> Optional[Trends]:
    """Trends for views, clicks and organic views; None with fewer than two points."""
    if len(timeseries) < 2:
        return None
    first, last = timeseries[0], timeseries[-1]
    return Trends(
        views=compute_trend(first.views, last.views),
        clicks=compute_trend(first.clicks, last.clicks),
        organic=compute_trend(first.organic, last.organic),
    )


# ==============================================================================
# Insights
# ==============================================================================


@dataclass(frozen=True)
class Insights:
    """Quick highlights of a summary."""

    best_click_rate: Optional[TrackingPageStat]
    longest_duration: Optional[TrackingPageStat]
    organic_share: float
    has_pages: bool = True

    def messages(self) -> list[str]:
        """Render the insights as display lines."""
        if not self.has_pages:
            return []
        lines = []
        if self.best_click_rate is not None:
            lines.append(
                f"Best click-through rate: {format_percent(self.best_click_rate.click_rate)} "
                f"on {self.best_click_rate.path}"
            )
        if self.longest_duration is not None:
            lines.append(
                f"Longest average duration: {format_duration(self.longest_duration.avg_duration_ms)} "
                f"on {self.longest_duration.path}"
            )
        lines.append(f"Organic share: {format_percent(self.organic_share)} in range")
        return lines


def build_insights(summary: TrackingSummary, min_views: int = INSIGHT_MIN_VIEWS) -> Insights:
    """Pick highlight pages among those with at least min_views views."""
    candidates = [page for page in summary.pages if page.views >= min_views]
    return Insights(
        best_click_rate=max(candidates, key=lambda page: page.click_rate, default=None),
        longest_duration=max(candidates, key=lambda page: page.avg_duration_ms, default=None),
        organic_share=summary.totals.organic_share,
        has_pages=bool(summary.pages),
    )


# ==============================================================================
# CSV export
# ==============================================================================


def _plain_number(value: float) -> str:
    """Render whole floats without a decimal part (1200.0 -> "1200")."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def export_pages_csv(pages: Iterable[TrackingPageStat]) -> str:
    """
    Render page stats as CSV text.

    Every field is double-quoted with embedded quotes doubled; clickRate has
    exactly four decimals. Rows are separated by a newline with no trailing
    newline.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for page in pages:
        writer.writerow(
            [
                page.path,
                page.views,
                page.unique_visitors,
                page.clicks,
                f"{page.click_rate:.4f}",
                _plain_number(page.avg_duration_ms),
                page.organic_views,
                page.direct_views,
            ]
        )
    return buffer.getvalue().rstrip("\n")


# ==============================================================================
# Formatting
# ==============================================================================


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def format_percent(value: float) -> str:
    """0.1234 -> "12.3%" (one decimal, dropped when zero)."""
    if value is None or math.isnan(value):
        value = 0.0
    return f"{_plain_number(_round_half_up(value * 1000) / 10)}%"


def format_duration(duration_ms: float) -> str:
    """Milliseconds as "42s" or "3m 07s"."""
    if not duration_ms or math.isnan(duration_ms):
        return "0s"
    total_seconds = _round_half_up(duration_ms / 1000)
    minutes, seconds = divmod(total_seconds, 60)
    if minutes == 0:
        return f"{seconds}s"
    return f"{minutes}m {seconds:02d}s"


def format_number(value: float) -> str:
    """Thousands-separated integer display."""
    return f"{_round_half_up(value or 0):,}"
