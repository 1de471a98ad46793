"""Relational persistence adapters."""

from civic_consensus.infrastructure.adapters.persistence.sql_audit_log_repository import (
    SqlAuditLogRepository,
    audit_log_table,
)

__all__: list[str] = ["SqlAuditLogRepository", "audit_log_table"]
