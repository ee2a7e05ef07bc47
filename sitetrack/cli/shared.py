# ==============================================================================
# Shared Utilities for CLI Commands
# ==============================================================================
"""
Shared utilities, constants, and helper functions used across CLI command modules.

This module provides:
- ANSI color codes and box-drawing characters
- Box drawing helpers for formatted output
- Summary source selection and dashboard loading with manual retry
"""

import json
import re
from typing import Optional

import typer

from sitetrack.base.summary_source import SummarySource
from sitetrack.core.classification import TrafficClassifier
from sitetrack.core.dashboard import (
    CUSTOM_RANGE,
    RANGE_PRESETS,
    RepositorySummarySource,
    TrackingDashboard,
)
from sitetrack.core.presentation import SORT_KEYS
from sitetrack.utils.config import get_settings

# ==============================================================================
# Constants
# ==============================================================================

# Box drawing width (unified for all commands)
BOX_WIDTH = 68


# ==============================================================================
# ANSI Colors and Box Drawing
# ==============================================================================


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    # Colors
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    # Bright colors
    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_CYAN = "\033[96m"


class Box:
    """Unicode box-drawing characters."""

    H = "─"  # horizontal
    V = "│"  # vertical
    TL = "┌"  # top-left
    TR = "┐"  # top-right
    BL = "└"  # bottom-left
    BR = "┘"  # bottom-right


class Icons:
    """Status icons using Unicode symbols."""

    CHECK = "✓"
    CROSS = "✗"
    WARN = "!"
    BULLET = "•"
    ARROW = "→"
    UP = "↑"
    DOWN = "↓"
    DATABASE = "◆"


# Module-level aliases for convenience
C, B, I = Colors, Box, Icons

_ANSI_ESCAPE_PATTERN = re.compile(r"\033\[[0-9;]*m")


def _visible_len(s: str) -> int:
    """Calculate visible length of string, ignoring ANSI escape codes."""
    return len(_ANSI_ESCAPE_PATTERN.sub("", s))


def _box_header(title: str, width: int = BOX_WIDTH) -> str:
    """Create a single-line box header."""
    inner_width = width - 2
    title_padded = f" {title} "
    left_bar = (inner_width - len(title_padded)) // 2
    right_bar = inner_width - left_bar - len(title_padded)
    return (
        f"{C.CYAN}{B.TL}{B.H * left_bar}{C.BOLD}{C.WHITE}{title_padded}"
        f"{C.RESET}{C.CYAN}{B.H * right_bar}{B.TR}{C.RESET}"
    )


def _box_line(content: str, width: int = BOX_WIDTH) -> str:
    """Create a line inside the box with proper padding to right border."""
    inner_width = width - 2
    padding = max(inner_width - _visible_len(content), 0)
    return f"{C.CYAN}{B.V}{C.RESET}{content}{' ' * padding}{C.CYAN}{B.V}{C.RESET}"


def _empty_line(width: int = BOX_WIDTH) -> str:
    """Create an empty line inside the box."""
    return f"{C.CYAN}{B.V}{' ' * (width - 2)}{B.V}{C.RESET}"


def _box_bottom(caption: str = "sitetrack", width: int = BOX_WIDTH) -> str:
    """Create a box bottom border with a centered caption."""
    text = f" {caption} "
    remaining = width - 2 - len(text)
    left_pad = remaining // 2
    right_pad = remaining - left_pad
    return f"{C.CYAN}{B.BL}{B.H * left_pad}{text}{B.H * right_pad}{B.BR}{C.RESET}"


# ==============================================================================
# Summary Helpers
# ==============================================================================


def validate_sort_key(value: str) -> str:
    """Typer callback rejecting unknown sort keys."""
    if value not in SORT_KEYS:
        raise typer.BadParameter(f"Use one of: {', '.join(SORT_KEYS)}")
    return value


def get_summary_source(url: Optional[str] = None) -> SummarySource:
    """
    Pick where summaries come from.

    With a URL the API is queried over HTTP; otherwise the configured event
    repository is read directly.
    """
    settings = get_settings()
    if url:
        from sitetrack.infrastructure.summary_source import HttpSummarySource

        return HttpSummarySource(url=url)

    from sitetrack.infrastructure.repositories import get_event_repository

    repository = get_event_repository(settings)
    repository.connect()
    return RepositorySummarySource(
        repository,
        classifier=TrafficClassifier.from_settings(settings.tracking),
        default_days=settings.tracking.default_range_days,
        max_days=settings.tracking.max_range_days,
    )


def load_dashboard(
    dashboard: TrackingDashboard,
    days: Optional[int],
    from_date: Optional[str],
    to_date: Optional[str],
    retry: bool = True,
    json_output: bool = False,
) -> None:
    """
    Load the requested range, offering a manual retry on failure.

    Raises:
        typer.Exit: With code 1 if the summary could not be loaded and the
                    operator declined (or was not offered) a retry
    """
    while True:
        if from_date and to_date:
            dashboard.select_range(CUSTOM_RANGE, from_date, to_date)
        elif from_date or to_date:
            dashboard.load(from_date=from_date, to_date=to_date)
        elif days is not None and str(days) in RANGE_PRESETS:
            dashboard.select_range(str(days))
        else:
            dashboard.load(days=days)

        if dashboard.error is None:
            return

        if json_output:
            print(json.dumps({"error": dashboard.error}))
        else:
            print(f"\n  {C.BRIGHT_RED}{I.CROSS} {dashboard.error}{C.RESET}")
        if not retry or not typer.confirm("  Retry?", default=True):
            raise typer.Exit(1)
