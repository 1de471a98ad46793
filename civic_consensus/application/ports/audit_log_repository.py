"""Audit log repository port.

Append-only: implementations expose no update or delete operation.
"""

from __future__ import annotations

from typing import Protocol

from civic_consensus.domain.models.audit_log import AuditActionType, AuditLogEntry


class AuditLogRepositoryProtocol(Protocol):
    """Repository protocol for the governance ledger."""

    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Append an entry.

        Returns:
            The stored entry with its ledger ``sequence`` assigned.

        Raises:
            ValueError: If an entry with the same id already exists.
        """
        ...

    async def get_entry(self, entry_id: str) -> AuditLogEntry | None:
        """Get a single entry by id."""
        ...

    async def query(
        self,
        group_id: str,
        action_types: frozenset[AuditActionType] | None = None,
        limit: int = 50,
        before_sequence: int | None = None,
    ) -> list[AuditLogEntry]:
        """Query a group's entries newest-first.

        Args:
            group_id: The group.
            action_types: Restrict to these types (None = all).
            limit: Maximum entries returned.
            before_sequence: Only entries older than this sequence.
        """
        ...

    async def count(self, group_id: str) -> int:
        """Number of entries stored for a group."""
        ...
