"""Join request repository port."""

from __future__ import annotations

from typing import Protocol

from civic_consensus.domain.models.join_request import JoinRequest, JoinRequestStatus


class JoinRequestRepositoryProtocol(Protocol):
    """Repository protocol for join requests."""

    async def save(self, request: JoinRequest) -> None:
        """Insert or replace a join request."""
        ...

    async def get(self, request_id: str) -> JoinRequest | None:
        """Get a join request by id."""
        ...

    async def list_for_group(
        self,
        group_id: str,
        statuses: frozenset[JoinRequestStatus] | None = None,
    ) -> list[JoinRequest]:
        """List a group's join requests, oldest first.

        Args:
            group_id: The group.
            statuses: Restrict to these states (None = all).
        """
        ...

    async def find_open(self, group_id: str, user_id: str) -> JoinRequest | None:
        """Find the user's pending or voting request for a group."""
        ...
