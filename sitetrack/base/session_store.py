# ==============================================================================
# Session Identity Store Abstract Base Class
# ==============================================================================
"""
Capability interface for the durable per-visitor session identifier.

The store holds exactly one string per browsing context. Absence triggers
generation of a new identifier by the Session Manager.
"""

import uuid
from abc import ABC, abstractmethod


def generate_session_id() -> str:
    """Generate a new random session identifier."""
    return str(uuid.uuid4())


class SessionIdStore(ABC):
    """Durable storage for one browsing context's session identifier."""

    @abstractmethod
    def get_session_id(self) -> str | None:
        """Return the stored identifier, or None if absent."""
        ...

    @abstractmethod
    def set_session_id(self, session_id: str) -> None:
        """Persist the identifier."""
        ...

    @abstractmethod
    def clear_session_id(self) -> None:
        """Forget the identifier."""
        ...
