"""Unit tests for SqlAuditLogRepository over SQLite (aiosqlite)."""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from civic_consensus.domain.models.audit_log import AuditActionType, AuditLogEntry
from civic_consensus.infrastructure.adapters.persistence import SqlAuditLogRepository

BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def repository(tmp_path: Path) -> AsyncIterator[SqlAuditLogRepository]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/audit.db")
    repo = SqlAuditLogRepository(engine)
    await repo.ensure_schema()
    yield repo
    await engine.dispose()


def _entry(
    action_type: AuditActionType = AuditActionType.JOIN,
    group_id: str = "g1",
    offset: int = 0,
) -> AuditLogEntry:
    return AuditLogEntry(
        id=str(uuid4()),
        group_id=group_id,
        action_type=action_type,
        actor_id="f",
        created_at=BASE_TIME + timedelta(minutes=offset),
        target_id="u1",
        details="details",
    )


class TestSqlAuditLogRepository:
    @pytest.mark.asyncio
    async def test_append_assigns_sequence(self, repository: SqlAuditLogRepository) -> None:
        first = await repository.append(_entry())
        second = await repository.append(_entry(offset=1))

        assert first.sequence is not None
        assert second.sequence > first.sequence

    @pytest.mark.asyncio
    async def test_get_entry_round_trips_utc(self, repository: SqlAuditLogRepository) -> None:
        stored = await repository.append(_entry(AuditActionType.PROMOTION))

        loaded = await repository.get_entry(stored.id)

        assert loaded == stored
        assert loaded.created_at.tzinfo is not None
        assert await repository.get_entry("missing") is None

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, repository: SqlAuditLogRepository) -> None:
        entry = _entry()
        await repository.append(entry)

        with pytest.raises(ValueError, match="already exists"):
            await repository.append(entry)

    @pytest.mark.asyncio
    async def test_query_newest_first_with_filters(
        self, repository: SqlAuditLogRepository
    ) -> None:
        join = await repository.append(_entry(AuditActionType.JOIN))
        promotion = await repository.append(_entry(AuditActionType.PROMOTION, offset=1))
        await repository.append(_entry(AuditActionType.JOIN, group_id="g2", offset=2))
        removal = await repository.append(_entry(AuditActionType.REMOVAL, offset=3))

        everything = await repository.query("g1")
        roles = await repository.query(
            "g1", frozenset({AuditActionType.PROMOTION, AuditActionType.REMOVAL})
        )
        page = await repository.query("g1", limit=2, before_sequence=removal.sequence)

        assert [e.id for e in everything] == [removal.id, promotion.id, join.id]
        assert [e.id for e in roles] == [removal.id, promotion.id]
        assert [e.id for e in page] == [promotion.id, join.id]
        assert await repository.count("g1") == 3
        assert await repository.count("g2") == 1
