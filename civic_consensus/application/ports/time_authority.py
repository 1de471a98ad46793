"""Clock port.

Voting deadlines, lazy expiry and the participation window are all
computed from ``now()``; services never read the wall clock directly.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class TimeAuthorityProtocol(ABC):
    """Source of timezone-aware UTC timestamps."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time, always timezone-aware UTC."""
        ...

    @abstractmethod
    def monotonic(self) -> float:
        """Seconds from an arbitrary origin, for elapsed-time measurement."""
        ...
