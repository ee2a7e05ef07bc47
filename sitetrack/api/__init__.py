# ==============================================================================
# HTTP API
# ==============================================================================
"""
FastAPI application serving event ingestion and tracking summaries.
"""

from sitetrack.api.server import create_app

__all__ = ["create_app"]
