# ==============================================================================
# HTTP Summary Source
# ==============================================================================
"""
Fetches tracking summaries from the API's summary endpoint via requests.
"""

import logging
from typing import Optional

import requests
from pydantic import ValidationError

from sitetrack.base.summary_source import SummaryQueryError, SummarySource
from sitetrack.core.models import TrackingSummary
from sitetrack.utils.config import get_settings

logger = logging.getLogger(__name__)


class HttpSummarySource(SummarySource):
    """GET /v1/tracking/summary client."""

    def __init__(
        self,
        url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the source.

        Args:
            url: Summary endpoint URL. If None, uses settings.
            token: Bearer token. If None, uses settings.
            timeout: Request timeout in seconds. If None, uses settings.
        """
        settings = get_settings()
        self._url = url or settings.api.summary_url
        self._token = token if token is not None else settings.api.summary_token
        self._timeout = timeout if timeout is not None else settings.api.request_timeout_seconds

    @property
    def url(self) -> str:
        return self._url

    def fetch(
        self,
        days: Optional[int] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
    ) -> TrackingSummary:
        params: dict[str, str] = {}
        if from_date:
            params["from"] = from_date
        if to_date:
            params["to"] = to_date
        if not from_date and not to_date and days is not None:
            params["days"] = str(days)

        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        try:
            response = requests.get(self._url, params=params, headers=headers, timeout=self._timeout)
        except requests.RequestException as e:
            logger.warning("Summary request to %s failed: %s", self._url, e)
            raise SummaryQueryError(f"Summary request failed: {e}") from e

        if response.status_code >= 400:
            detail = _error_detail(response)
            raise SummaryQueryError(f"Summary request failed ({response.status_code}): {detail}")

        try:
            return TrackingSummary.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise SummaryQueryError(f"Malformed summary response: {e}") from e


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason or "unknown error"
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)
