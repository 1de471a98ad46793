"""Membership repository stub.

In-memory implementation of MembershipRepositoryProtocol.
"""

from __future__ import annotations

from civic_consensus.application.ports.membership_repository import (
    MembershipRepositoryProtocol,
)
from civic_consensus.domain.models.membership import Member


class MembershipRepositoryStub(MembershipRepositoryProtocol):
    """In-memory memberships keyed by (group_id, user_id)."""

    def __init__(self) -> None:
        self._members: dict[tuple[str, str], Member] = {}

    def clear(self) -> None:
        """Clear all stored data."""
        self._members.clear()

    def add_member(self, member: Member) -> None:
        """Seed a membership directly, bypassing the registry (test setup)."""
        self._members[(member.group_id, member.user_id)] = member

    async def get_member(self, group_id: str, user_id: str) -> Member | None:
        return self._members.get((group_id, user_id))

    async def list_members(self, group_id: str) -> list[Member]:
        members = [m for (g, _), m in self._members.items() if g == group_id]
        return sorted(members, key=lambda m: (m.joined_at, m.user_id))

    async def save_member(self, member: Member) -> None:
        self._members[(member.group_id, member.user_id)] = member

    async def save_members(self, members: list[Member]) -> None:
        for member in members:
            self._members[(member.group_id, member.user_id)] = member

    async def delete_member(self, group_id: str, user_id: str) -> None:
        self._members.pop((group_id, user_id), None)
