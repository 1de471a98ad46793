"""Membership repository port.

Storage for group memberships. Role counts are always derived from
``list_members``; no count is stored.
"""

from __future__ import annotations

from typing import Protocol

from civic_consensus.domain.models.membership import Member


class MembershipRepositoryProtocol(Protocol):
    """Repository protocol for group memberships."""

    async def get_member(self, group_id: str, user_id: str) -> Member | None:
        """Get a membership, or None if the user is not in the group."""
        ...

    async def list_members(self, group_id: str) -> list[Member]:
        """List every membership of a group."""
        ...

    async def save_member(self, member: Member) -> None:
        """Insert or replace a membership."""
        ...

    async def save_members(self, members: list[Member]) -> None:
        """Insert or replace several memberships in one write.

        Used for the founder swap, which must land as a single change.
        """
        ...

    async def delete_member(self, group_id: str, user_id: str) -> None:
        """Delete a membership."""
        ...
