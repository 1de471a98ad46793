"""Audit subscriber stub recording every delivered entry."""

from __future__ import annotations

from civic_consensus.application.ports.audit_subscriber import (
    AuditLogSubscriberProtocol,
)
from civic_consensus.domain.models.audit_log import AuditLogEntry


class AuditSubscriberStub(AuditLogSubscriberProtocol):
    """Collects delivered entries; can be told to fail."""

    def __init__(self, *, failing: bool = False) -> None:
        self.received: list[AuditLogEntry] = []
        self._failing = failing

    async def on_entry(self, entry: AuditLogEntry) -> None:
        if self._failing:
            raise RuntimeError("notification delivery failed")
        self.received.append(entry)
