# ==============================================================================
# Export Command
# ==============================================================================
"""
CSV export of per-page tracking statistics.

The file is built locally from the loaded summary using the same path filter
and sort order as 'sitetrack summary'.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer

from sitetrack.cli.shared import C, I
from sitetrack.cli.summary import (
    AscOption,
    DaysOption,
    FromOption,
    NoRetryOption,
    PathOption,
    SortOption,
    ToOption,
    UrlOption,
    open_dashboard,
)
from sitetrack.core.presentation import CSV_FILENAME, CSV_MIME_TYPE


def export_pages(
    days: DaysOption = None,
    from_date: FromOption = None,
    to_date: ToOption = None,
    path: PathOption = "",
    sort: SortOption = "views",
    asc: AscOption = False,
    url: UrlOption = None,
    output: Annotated[
        Path, typer.Option("--output", "-o", help=f"Destination file ({CSV_MIME_TYPE})")
    ] = Path(CSV_FILENAME),
    no_retry: NoRetryOption = False,
) -> None:
    """Export page statistics as CSV.

    Examples:
        sitetrack export
        sitetrack export --days 30 --sort ctr
        sitetrack export --path /blog -o blog-pages.csv
    """
    if days is None and not from_date and not to_date:
        days = 7

    dashboard = open_dashboard(days, from_date, to_date, path, sort, asc, url, retry=not no_retry)
    pages = dashboard.pages

    output.write_text(dashboard.export_csv(), encoding="utf-8")

    if not pages:
        print(f"  {C.BRIGHT_YELLOW}{I.WARN} No pages in range; wrote header only to {output}{C.RESET}")
        return
    print(f"  {C.BRIGHT_GREEN}{I.CHECK} Exported {len(pages)} pages to {output}{C.RESET}")
