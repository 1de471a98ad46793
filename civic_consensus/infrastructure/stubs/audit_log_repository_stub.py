"""Audit log repository stub.

In-memory append-only ledger implementing AuditLogRepositoryProtocol.
Supports failure injection so tests can check that mutations which
cannot be logged are rejected.
"""

from __future__ import annotations

from civic_consensus.application.ports.audit_log_repository import (
    AuditLogRepositoryProtocol,
)
from civic_consensus.domain.models.audit_log import AuditActionType, AuditLogEntry


class AuditLogWriteError(RuntimeError):
    """Raised by the stub when a write failure has been injected."""


class AuditLogRepositoryStub(AuditLogRepositoryProtocol):
    """In-memory ledger; entries are stored in append order."""

    def __init__(self) -> None:
        self._entries: list[AuditLogEntry] = []
        self._ids: set[str] = set()
        self._fail_appends = False

    def clear(self) -> None:
        """Clear all stored data."""
        self._entries.clear()
        self._ids.clear()
        self._fail_appends = False

    def set_append_failure(self, failing: bool) -> None:
        """Make subsequent appends raise AuditLogWriteError."""
        self._fail_appends = failing

    @property
    def entries(self) -> tuple[AuditLogEntry, ...]:
        """All entries in append order (test inspection)."""
        return tuple(self._entries)

    def entries_of_type(self, action_type: AuditActionType) -> list[AuditLogEntry]:
        return [e for e in self._entries if e.action_type == action_type]

    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        if self._fail_appends:
            raise AuditLogWriteError("audit log unavailable")
        if entry.id in self._ids:
            raise ValueError(f"Audit entry {entry.id} already exists")
        stored = entry.with_sequence(len(self._entries) + 1)
        self._entries.append(stored)
        self._ids.add(stored.id)
        return stored

    async def get_entry(self, entry_id: str) -> AuditLogEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    async def query(
        self,
        group_id: str,
        action_types: frozenset[AuditActionType] | None = None,
        limit: int = 50,
        before_sequence: int | None = None,
    ) -> list[AuditLogEntry]:
        matched: list[AuditLogEntry] = []
        for entry in reversed(self._entries):
            if entry.group_id != group_id:
                continue
            if action_types is not None and entry.action_type not in action_types:
                continue
            if before_sequence is not None and (entry.sequence or 0) >= before_sequence:
                continue
            matched.append(entry)
            if len(matched) >= limit:
                break
        return matched

    async def count(self, group_id: str) -> int:
        return sum(1 for e in self._entries if e.group_id == group_id)
