# ==============================================================================
# Classification Policy
# ==============================================================================
"""
Pure, injectable classification rules.

- is_trackable_path(): which pages belong to the tracked marketing surface
- TrafficClassifier: organic / direct / referral attribution of a page view

Both are policy, not algorithm: the lists they match against come from
TrackingSettings and can be extended without touching the Session Manager
or the aggregation math.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence
from urllib.parse import urlsplit


class TrafficSource(str, Enum):
    """Attribution of a page view."""

    ORGANIC = "organic"
    DIRECT = "direct"
    REFERRAL = "referral"


def is_trackable_path(path: str, prefixes: Sequence[str] = ("/blog",)) -> bool:
    """
    Check whether a path is part of the tracked marketing surface.

    The root path is always tracked. A prefix tracks itself and everything
    below it ("/blog" and "/blog/first-post", but not "/blogroll").
    """
    normalized = path or "/"
    if normalized == "/":
        return True
    for prefix in prefixes:
        base = prefix.rstrip("/")
        if not base:
            continue
        if normalized == base or normalized.startswith(base + "/"):
            return True
    return False


def referrer_host(referrer: Optional[str]) -> Optional[str]:
    """Extract the lower-cased host of a referrer URL, or None if unparsable."""
    if not referrer:
        return None
    try:
        host = urlsplit(referrer.strip()).hostname
    except ValueError:
        return None
    return host.lower() if host else None


@dataclass(frozen=True)
class TrafficClassifier:
    """
    Three-way attribution of page views.

    Rules, in order:
    1. utm_medium in paid_mediums -> referral (paid traffic is never organic)
    2. utm_medium or utm_source in search_mediums -> organic
    3. referrer present:
       - host in internal_hosts -> direct (self-referral)
       - host contains a search_engines fragment -> organic
       - otherwise -> referral
    4. utm_source names a search engine -> organic, any other utm_source -> referral
    5. nothing present -> direct
    """

    search_engines: tuple[str, ...] = (
        "google.",
        "bing.",
        "yahoo.",
        "duckduckgo.",
        "ecosia.",
        "baidu.",
        "yandex.",
    )
    search_mediums: tuple[str, ...] = ("organic", "seo")
    paid_mediums: tuple[str, ...] = ("cpc", "ppc", "paid", "paidsearch")
    internal_hosts: tuple[str, ...] = ("localhost", "127.0.0.1")

    @property
    def engine_names(self) -> tuple[str, ...]:
        """Bare engine names ("google." -> "google") for matching utm_source."""
        return tuple(engine.strip(".").lower() for engine in self.search_engines if engine)

    @classmethod
    def from_settings(cls, tracking) -> "TrafficClassifier":
        """Build a classifier from TrackingSettings."""
        return cls(
            search_engines=tuple(tracking.search_engines),
            search_mediums=tuple(tracking.search_mediums),
            paid_mediums=tuple(tracking.paid_mediums),
            internal_hosts=tuple(tracking.internal_hosts),
        )

    def _is_internal(self, host: str) -> bool:
        return any(host == internal or host.endswith("." + internal) for internal in self.internal_hosts)

    def _is_search_host(self, host: str) -> bool:
        return any(engine.lower() in host for engine in self.search_engines)

    def classify(
        self,
        referrer: Optional[str] = None,
        utm_source: Optional[str] = None,
        utm_medium: Optional[str] = None,
    ) -> TrafficSource:
        """Classify a single page view from its attribution fields."""
        source = (utm_source or "").strip().lower()
        medium = (utm_medium or "").strip().lower()

        if medium and medium in self.paid_mediums:
            return TrafficSource.REFERRAL
        if medium in self.search_mediums or source in self.search_mediums:
            return TrafficSource.ORGANIC

        if referrer and referrer.strip():
            host = referrer_host(referrer)
            if host and self._is_internal(host):
                return TrafficSource.DIRECT
            if host and self._is_search_host(host):
                return TrafficSource.ORGANIC
            return TrafficSource.REFERRAL

        if source:
            if source in self.engine_names:
                return TrafficSource.ORGANIC
            return TrafficSource.REFERRAL
        if medium:
            return TrafficSource.REFERRAL
        return TrafficSource.DIRECT

    @staticmethod
    def has_attribution(
        referrer: Optional[str], utm_source: Optional[str], utm_medium: Optional[str]
    ) -> bool:
        """True if any attribution field is present."""
        return any(value and value.strip() for value in (referrer, utm_source, utm_medium))
