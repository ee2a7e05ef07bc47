# ==============================================================================
# Summary Command
# ==============================================================================
"""
Tracking summary command for the sitetrack CLI.

Renders the operator dashboard in the terminal: headline totals, traffic mix,
first-vs-last trends, the filtered/sorted page table and quick insights.
"""

import json as _json
from dataclasses import asdict
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from sitetrack.cli.shared import (
    C,
    I,
    _box_bottom,
    _box_header,
    _box_line,
    _empty_line,
    get_summary_source,
    load_dashboard,
    validate_sort_key,
)
from sitetrack.core.dashboard import TrackingDashboard
from sitetrack.core.presentation import (
    Trend,
    format_duration,
    format_number,
    format_percent,
)
from sitetrack.utils.config import get_settings

# ==============================================================================
# Shared Options
# ==============================================================================

DaysOption = Annotated[
    Optional[int],
    typer.Option("--days", "-d", help="Rolling window in days (7, 30, 90 or any 1-90)"),
]
FromOption = Annotated[
    Optional[str], typer.Option("--from", help="Start date (YYYY-MM-DD)")
]
ToOption = Annotated[Optional[str], typer.Option("--to", help="End date (YYYY-MM-DD)")]
PathOption = Annotated[
    str, typer.Option("--path", "-p", help="Only pages whose path contains this text")
]
SortOption = Annotated[
    str,
    typer.Option(
        "--sort",
        "-s",
        help="Sort pages by views, ctr, duration, clicks or unique",
        callback=validate_sort_key,
    ),
]
AscOption = Annotated[bool, typer.Option("--asc", help="Sort ascending instead of descending")]
UrlOption = Annotated[
    Optional[str],
    typer.Option("--url", help="Query a running API at this summary URL instead of the database"),
]
NoRetryOption = Annotated[
    bool, typer.Option("--no-retry", help="Exit immediately if the summary cannot be loaded")
]


# ==============================================================================
# Helper Functions
# ==============================================================================


def _trend_text(change: Trend) -> str:
    if change.value > 0:
        return f"{C.BRIGHT_GREEN}{I.UP} +{format_number(change.value)} ({format_percent(change.pct)}){C.RESET}"
    if change.value < 0:
        return f"{C.BRIGHT_RED}{I.DOWN} {format_number(change.value)} ({format_percent(change.pct)}){C.RESET}"
    return f"{C.DIM}{I.ARROW} 0 ({format_percent(change.pct)}){C.RESET}"


def open_dashboard(
    days: Optional[int],
    from_date: Optional[str],
    to_date: Optional[str],
    path: str,
    sort: str,
    asc: bool,
    url: Optional[str],
    retry: bool,
    json_output: bool = False,
) -> TrackingDashboard:
    """Create the summary source and load the requested range into a dashboard."""
    settings = get_settings()
    try:
        source = get_summary_source(url)
    except Exception as e:
        if json_output:
            print(_json.dumps({"error": f"Cannot open event log: {e}"}))
        else:
            print(f"\n  {C.BRIGHT_RED}{I.CROSS} Cannot open event log: {e}{C.RESET}\n")
        raise typer.Exit(1)

    dashboard = TrackingDashboard(
        source,
        path_query=path,
        sort_key=sort,
        descending=not asc,
        insight_min_views=settings.tracking.insight_min_views,
    )
    try:
        load_dashboard(dashboard, days, from_date, to_date, retry=retry, json_output=json_output)
    finally:
        source.close()
    return dashboard


def _print_dashboard(dashboard: TrackingDashboard, limit: int) -> None:
    summary = dashboard.summary
    totals = summary.totals
    mix = dashboard.source_totals
    referral = mix["total"] - mix["organic"] - mix["direct"]

    print()
    print(_box_header("Tracking Summary"))
    print(_box_line(f"  {C.DIM}{summary.since.date()} {I.ARROW} {summary.until.date()}{C.RESET}"))
    print(_empty_line())
    print(_box_line(f"  {C.BOLD}Pageviews:{C.RESET}        {format_number(totals.views)}"))
    print(_box_line(f"  {C.BOLD}Unique visitors:{C.RESET}  {format_number(totals.unique_visitors)}"))
    print(
        _box_line(
            f"  {C.BOLD}Click rate:{C.RESET}       {format_percent(dashboard.click_rate)}"
            f"  {C.DIM}({format_number(totals.clicks)} clicks){C.RESET}"
        )
    )
    print(_box_line(f"  {C.BOLD}Avg duration:{C.RESET}     {format_duration(totals.avg_duration_ms)}"))
    print(_box_line(f"  {C.BOLD}Organic share:{C.RESET}    {format_percent(totals.organic_share)}"))
    print(_empty_line())
    print(
        _box_line(
            f"  {C.CYAN}Traffic mix{C.RESET}  organic {format_number(mix['organic'])}"
            f"  {I.BULLET}  direct {format_number(mix['direct'])}"
            f"  {I.BULLET}  referral {format_number(referral)}"
        )
    )

    trends = dashboard.trends
    print(_empty_line())
    if trends is None:
        print(_box_line(f"  {C.DIM}Too few points for trends.{C.RESET}"))
    else:
        print(_box_line(f"  {C.CYAN}Trends{C.RESET} {C.DIM}(first {I.ARROW} last day){C.RESET}"))
        print(_box_line(f"    Pageviews  {_trend_text(trends.views)}"))
        print(_box_line(f"    Clicks     {_trend_text(trends.clicks)}"))
        print(_box_line(f"    Organic    {_trend_text(trends.organic)}"))
    print(_box_bottom())

    pages = dashboard.pages
    print()
    if not pages:
        print(f"  {C.DIM}No pages in range.{C.RESET}")
    else:
        direction = "asc" if not dashboard.descending else "desc"
        console = Console()
        table = Table(
            title=f"Pages by {dashboard.sort_key} ({direction})",
            show_header=True,
            header_style="bold",
        )
        table.add_column("Path")
        table.add_column("Views", justify="right")
        table.add_column("Unique", justify="right")
        table.add_column("CTR", justify="right")
        table.add_column("Avg time", justify="right")
        table.add_column("Clicks", justify="right")
        for page in pages[:limit]:
            table.add_row(
                page.path,
                format_number(page.views),
                format_number(page.unique_visitors),
                format_percent(page.click_rate),
                format_duration(page.avg_duration_ms),
                format_number(page.clicks),
            )
        console.print(table)
        if len(pages) > limit:
            print(f"  {C.DIM}... {len(pages) - limit} more (use --limit){C.RESET}")

    messages = dashboard.insights.messages()
    print()
    print(f"  {C.BOLD}Insights{C.RESET}")
    if not messages:
        print(f"  {C.DIM}No insights yet.{C.RESET}")
    for message in messages:
        print(f"  {C.BRIGHT_CYAN}{I.ARROW}{C.RESET} {message}")
    print()


# ==============================================================================
# Commands
# ==============================================================================


def show_summary(
    days: DaysOption = None,
    from_date: FromOption = None,
    to_date: ToOption = None,
    path: PathOption = "",
    sort: SortOption = "views",
    asc: AscOption = False,
    url: UrlOption = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum page rows to show")] = 20,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
    no_retry: NoRetryOption = False,
) -> None:
    """Show tracking analytics for a date range.

    Without --days or --from/--to the last 7 days are shown.

    Examples:
        sitetrack summary
        sitetrack summary --days 30 --sort ctr
        sitetrack summary --from 2024-05-01 --to 2024-05-31 --path /blog
        sitetrack summary --url http://127.0.0.1:8000/v1/tracking/summary --json
    """
    if days is None and not from_date and not to_date:
        days = 7

    dashboard = open_dashboard(
        days,
        from_date,
        to_date,
        path,
        sort,
        asc,
        url,
        retry=not no_retry and not json_output,
        json_output=json_output,
    )

    if json_output:
        data = dashboard.summary.to_json_dict()
        data["pages"] = [page.to_json_dict() for page in dashboard.pages]
        trends = dashboard.trends
        data["trends"] = asdict(trends) if trends is not None else None
        data["insights"] = dashboard.insights.messages()
        print(_json.dumps(data, indent=2))
        return

    _print_dashboard(dashboard, limit)
