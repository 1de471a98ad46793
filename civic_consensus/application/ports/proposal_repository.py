"""Proposal repository port."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from civic_consensus.domain.models.proposal import Proposal, ProposalStatus


class ProposalRepositoryProtocol(Protocol):
    """Repository protocol for governance proposals."""

    async def save(self, proposal: Proposal) -> None:
        """Insert or replace a proposal."""
        ...

    async def get(self, proposal_id: str) -> Proposal | None:
        """Get a proposal by id."""
        ...

    async def list_for_group(
        self,
        group_id: str,
        statuses: frozenset[ProposalStatus] | None = None,
    ) -> list[Proposal]:
        """List a group's proposals, newest first."""
        ...

    async def list_expiring(self, now: datetime) -> list[Proposal]:
        """List active proposals (any group) whose window has closed."""
        ...

    async def list_resolved_since(self, group_id: str, since: datetime) -> list[Proposal]:
        """List proposals of a group resolved at or after ``since``."""
        ...
