# ==============================================================================
# Event Transport Abstract Base Class
# ==============================================================================
"""
Abstract interface for delivering tracking events to the ingestion endpoint.

Delivery is fire-and-forget: implementations must never raise to the caller
and must never block it. There are no retries and no queuing; an event that
fails to deliver is lost.
"""

from abc import ABC, abstractmethod

from sitetrack.core.models import EventPayload


class EventTransport(ABC):
    """Fire-and-forget delivery of event payloads."""

    @abstractmethod
    def send(self, payload: EventPayload, keepalive: bool = False) -> None:
        """
        Deliver one event payload, swallowing every error.

        Args:
            payload: Event to deliver
            keepalive: Allow the delivery to complete after the originating
                       context is torn down (used only for unload-time sends)
        """
        ...
