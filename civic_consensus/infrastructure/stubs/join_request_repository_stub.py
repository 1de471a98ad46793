"""Join request repository stub.

In-memory implementation of JoinRequestRepositoryProtocol.
"""

from __future__ import annotations

from civic_consensus.application.ports.join_request_repository import (
    JoinRequestRepositoryProtocol,
)
from civic_consensus.domain.models.join_request import JoinRequest, JoinRequestStatus


class JoinRequestRepositoryStub(JoinRequestRepositoryProtocol):
    """In-memory join requests keyed by id."""

    def __init__(self) -> None:
        self._requests: dict[str, JoinRequest] = {}

    def clear(self) -> None:
        """Clear all stored data."""
        self._requests.clear()

    async def save(self, request: JoinRequest) -> None:
        self._requests[request.id] = request

    async def get(self, request_id: str) -> JoinRequest | None:
        return self._requests.get(request_id)

    async def list_for_group(
        self,
        group_id: str,
        statuses: frozenset[JoinRequestStatus] | None = None,
    ) -> list[JoinRequest]:
        requests = [
            r
            for r in self._requests.values()
            if r.group_id == group_id and (statuses is None or r.status in statuses)
        ]
        return sorted(requests, key=lambda r: r.created_at)

    async def find_open(self, group_id: str, user_id: str) -> JoinRequest | None:
        for request in self._requests.values():
            if request.group_id == group_id and request.user_id == user_id and request.is_open:
                return request
        return None
