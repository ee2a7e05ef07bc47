# ==============================================================================
# Sitetrack Utilities
# ==============================================================================
"""
Shared utilities for the tracking pipeline.

This module exports configuration and schema helpers for use throughout the
pipeline.
"""

from sitetrack.utils.config import (
    ApiSettings,
    PostgresSettings,
    Settings,
    TrackingSettings,
    ValkeySettings,
    get_settings,
)
from sitetrack.utils.db import (
    check_db_connection,
    ensure_schema,
    reset_schema,
)

__all__ = [
    # Config
    "ApiSettings",
    "PostgresSettings",
    "Settings",
    "TrackingSettings",
    "ValkeySettings",
    "get_settings",
    # Database
    "check_db_connection",
    "ensure_schema",
    "reset_schema",
]
