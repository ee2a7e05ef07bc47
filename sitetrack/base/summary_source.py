# ==============================================================================
# Abstract Summary Source
# ==============================================================================
"""
Abstract interface for obtaining a TrackingSummary for a date range.

Implementations:
- RepositorySummarySource (core/dashboard.py): aggregates the local event log
- HttpSummarySource (infrastructure/summary_source.py): queries the API
"""

from abc import ABC, abstractmethod
from typing import Optional

from sitetrack.core.models import TrackingSummary


class SummaryQueryError(RuntimeError):
    """Raised when a summary cannot be obtained."""


class SummarySource(ABC):
    """Provider of tracking summaries."""

    @abstractmethod
    def fetch(
        self,
        days: Optional[int] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
    ) -> TrackingSummary:
        """
        Get the summary for a rolling window or an explicit date range.

        Args:
            days: Rolling window length ending today
            from_date: ISO start date (takes precedence over days)
            to_date: ISO end date

        Raises:
            SummaryQueryError: If the summary cannot be obtained
        """
        ...

    def close(self) -> None:
        """Release resources held by the source."""
        pass
