"""Proposal repository stub.

In-memory implementation of ProposalRepositoryProtocol.
"""

from __future__ import annotations

from datetime import datetime

from civic_consensus.application.ports.proposal_repository import (
    ProposalRepositoryProtocol,
)
from civic_consensus.domain.models.proposal import Proposal, ProposalStatus


class ProposalRepositoryStub(ProposalRepositoryProtocol):
    """In-memory proposals keyed by id."""

    def __init__(self) -> None:
        self._proposals: dict[str, Proposal] = {}

    def clear(self) -> None:
        """Clear all stored data."""
        self._proposals.clear()

    def add_proposal(self, proposal: Proposal) -> None:
        """Seed a proposal directly (test setup)."""
        self._proposals[proposal.id] = proposal

    async def save(self, proposal: Proposal) -> None:
        self._proposals[proposal.id] = proposal

    async def get(self, proposal_id: str) -> Proposal | None:
        return self._proposals.get(proposal_id)

    async def list_for_group(
        self,
        group_id: str,
        statuses: frozenset[ProposalStatus] | None = None,
    ) -> list[Proposal]:
        proposals = [
            p
            for p in self._proposals.values()
            if p.group_id == group_id and (statuses is None or p.status in statuses)
        ]
        return sorted(proposals, key=lambda p: p.created_at, reverse=True)

    async def list_expiring(self, now: datetime) -> list[Proposal]:
        return [
            p for p in self._proposals.values() if p.is_active and p.is_past_deadline(now)
        ]

    async def list_resolved_since(self, group_id: str, since: datetime) -> list[Proposal]:
        return [
            p
            for p in self._proposals.values()
            if p.group_id == group_id
            and p.status.is_resolved
            and p.resolved_at is not None
            and p.resolved_at >= since
        ]
