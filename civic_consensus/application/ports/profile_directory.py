"""Profile directory port.

The identity layer supplies display profiles. The engine stores user
ids only and resolves names for display.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class UserProfile:
    """Display profile of a user."""

    user_id: str
    name: str
    avatar_url: str | None = None


class ProfileDirectoryProtocol(Protocol):
    """Lookup of display profiles."""

    async def get_profiles(self, user_ids: Iterable[str]) -> dict[str, UserProfile]:
        """Get profiles by id; unknown ids are omitted from the result."""
        ...
