# ==============================================================================
# CLI Commands Module
# ==============================================================================
"""
CLI commands for the sitetrack pipeline.

Commands are organized into separate modules for maintainability:
- shared.py: Common utilities, constants, and helpers
- summary.py / export.py: Dashboard rendering and CSV export
- config.py, db.py, serve.py, status.py: Configuration, schema, API server and health
"""

from sitetrack.cli.shared import (
    # Constants
    BOX_WIDTH,
    # Classes
    Box,
    Colors,
    Icons,
    # Aliases
    B,
    C,
    I,
    # Box drawing helpers (private)
    _box_bottom,
    _box_header,
    _box_line,
    _empty_line,
    _visible_len,
    # Summary helpers
    get_summary_source,
    load_dashboard,
    validate_sort_key,
)

__all__ = [
    # Constants
    "BOX_WIDTH",
    # Classes
    "Box",
    "Colors",
    "Icons",
    # Aliases
    "B",
    "C",
    "I",
    # Box drawing helpers (private - kept for internal use)
    "_box_bottom",
    "_box_header",
    "_box_line",
    "_empty_line",
    "_visible_len",
    # Summary helpers
    "get_summary_source",
    "load_dashboard",
    "validate_sort_key",
]
