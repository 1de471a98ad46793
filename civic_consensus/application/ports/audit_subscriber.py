"""Audit log subscriber port.

The notification/UI layer subscribes to committed ledger entries. The
audit log's responsibility ends at publishing.
"""

from __future__ import annotations

from typing import Protocol

from civic_consensus.domain.models.audit_log import AuditLogEntry


class AuditLogSubscriberProtocol(Protocol):
    """Receives every committed audit entry."""

    async def on_entry(self, entry: AuditLogEntry) -> None:
        """Handle a committed entry."""
        ...
