# ==============================================================================
# Base Abstract Classes
# ==============================================================================
"""
Abstract base classes defining the ports of the tracking pipeline.

Concrete adapters live in sitetrack.infrastructure.
"""

from sitetrack.base.repositories import EventRepository
from sitetrack.base.session_store import SessionIdStore, generate_session_id
from sitetrack.base.summary_source import SummaryQueryError, SummarySource
from sitetrack.base.transport import EventTransport

__all__ = [
    "EventRepository",
    "EventTransport",
    "SessionIdStore",
    "SummaryQueryError",
    "SummarySource",
    "generate_session_id",
]
