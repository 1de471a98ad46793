"""SQL-backed audit log repository (SQLAlchemy async).

Persists the governance ledger in a single ``governance_audit_log``
table. The ledger ``sequence`` is the autoincrement primary key, so
newest-first ordering and cursor pagination follow insertion order.

Only INSERT and SELECT statements are issued: there is no update or
delete path for ledger rows.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    func,
    insert,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine
from structlog import get_logger

from civic_consensus.application.ports.audit_log_repository import (
    AuditLogRepositoryProtocol,
)
from civic_consensus.domain.models.audit_log import AuditActionType, AuditLogEntry

logger = get_logger()

metadata = MetaData()

audit_log_table = Table(
    "governance_audit_log",
    metadata,
    Column(
        "sequence",
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    ),
    Column("id", String(64), nullable=False, unique=True),
    Column("group_id", String(128), nullable=False, index=True),
    Column("action_type", String(64), nullable=False, index=True),
    Column("actor_id", String(128), nullable=False),
    Column("target_id", String(128), nullable=True),
    Column("details", Text, nullable=True),
    Column("subject_id", String(64), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _row_to_entry(row: Any) -> AuditLogEntry:
    return AuditLogEntry(
        id=row.id,
        group_id=row.group_id,
        action_type=AuditActionType(row.action_type),
        actor_id=row.actor_id,
        created_at=_as_utc(row.created_at),
        target_id=row.target_id,
        details=row.details,
        subject_id=row.subject_id,
        sequence=row.sequence,
    )


class SqlAuditLogRepository(AuditLogRepositoryProtocol):
    """Audit log stored in a relational database.

    Example:
        >>> engine = create_async_engine("sqlite+aiosqlite:///audit.db")
        >>> repo = SqlAuditLogRepository(engine)
        >>> await repo.ensure_schema()
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._log = logger.bind(component="sql_audit_log")

    async def ensure_schema(self) -> None:
        """Create the ledger table if it does not exist."""
        async with self._engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        self._log.info("audit_log_schema_ready")

    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        statement = insert(audit_log_table).values(
            id=entry.id,
            group_id=entry.group_id,
            action_type=entry.action_type.value,
            actor_id=entry.actor_id,
            target_id=entry.target_id,
            details=entry.details,
            subject_id=entry.subject_id,
            created_at=entry.created_at,
        )
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(statement)
        except IntegrityError as e:
            raise ValueError(f"Audit entry {entry.id} already exists") from e
        sequence = int(result.inserted_primary_key[0])
        return entry.with_sequence(sequence)

    async def get_entry(self, entry_id: str) -> AuditLogEntry | None:
        statement = select(audit_log_table).where(audit_log_table.c.id == entry_id)
        async with self._engine.connect() as conn:
            row = (await conn.execute(statement)).first()
        return _row_to_entry(row) if row is not None else None

    async def query(
        self,
        group_id: str,
        action_types: frozenset[AuditActionType] | None = None,
        limit: int = 50,
        before_sequence: int | None = None,
    ) -> list[AuditLogEntry]:
        statement = select(audit_log_table).where(audit_log_table.c.group_id == group_id)
        if action_types is not None:
            statement = statement.where(
                audit_log_table.c.action_type.in_(sorted(a.value for a in action_types))
            )
        if before_sequence is not None:
            statement = statement.where(audit_log_table.c.sequence < before_sequence)
        statement = statement.order_by(audit_log_table.c.sequence.desc()).limit(limit)
        async with self._engine.connect() as conn:
            rows = (await conn.execute(statement)).all()
        return [_row_to_entry(row) for row in rows]

    async def count(self, group_id: str) -> int:
        statement = (
            select(func.count())
            .select_from(audit_log_table)
            .where(audit_log_table.c.group_id == group_id)
        )
        async with self._engine.connect() as conn:
            return int((await conn.execute(statement)).scalar_one())
