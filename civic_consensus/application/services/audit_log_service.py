"""Audit log service.

Append-only governance ledger. Every resolution, membership mutation
and executed policy effect lands here as exactly one entry; the
notification/UI layer is told about each committed entry through the
registered subscribers.

Queries are newest-first and cursor-paginated on the ledger sequence.
Display names are resolved at read time from the profile directory;
stored entries carry user ids only.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import uuid4

from civic_consensus.application.ports.audit_log_repository import (
    AuditLogRepositoryProtocol,
)
from civic_consensus.application.ports.audit_subscriber import (
    AuditLogSubscriberProtocol,
)
from civic_consensus.application.ports.profile_directory import (
    ProfileDirectoryProtocol,
)
from civic_consensus.application.ports.time_authority import TimeAuthorityProtocol
from civic_consensus.application.services.base import LoggingMixin
from civic_consensus.config.governance_config import (
    DEFAULT_AUDIT_LOG_LIMIT,
    MAX_AUDIT_LOG_LIMIT,
)
from civic_consensus.domain.errors import InvalidOperationError, NotFoundError
from civic_consensus.domain.models.audit_log import (
    MODERATION_ACTIONS,
    SYSTEM_ACTOR_ID,
    SYSTEM_ACTOR_NAME,
    UNKNOWN_USER_NAME,
    AuditActionType,
    AuditLogEntry,
    AuditLogFilter,
    AuditLogPage,
)


class AuditLogService(LoggingMixin):
    """Writes and reads the governance ledger.

    Example:
        >>> audit = AuditLogService(repository, time_authority)
        >>> entry = await audit.record(
        ...     group_id="g1",
        ...     action_type=AuditActionType.PROMOTION,
        ...     actor_id="founder",
        ...     target_id="alice",
        ... )
        >>> page = await audit.query("g1", AuditLogFilter.ROLES)
    """

    def __init__(
        self,
        repository: AuditLogRepositoryProtocol,
        time_authority: TimeAuthorityProtocol,
        profile_directory: ProfileDirectoryProtocol | None = None,
        subscribers: Iterable[AuditLogSubscriberProtocol] = (),
        default_limit: int = DEFAULT_AUDIT_LOG_LIMIT,
    ) -> None:
        self._repository = repository
        self._time = time_authority
        self._profiles = profile_directory
        self._subscribers: list[AuditLogSubscriberProtocol] = list(subscribers)
        self._default_limit = default_limit
        self._init_logger()

    def subscribe(self, subscriber: AuditLogSubscriberProtocol) -> None:
        """Register a subscriber for committed entries."""
        self._subscribers.append(subscriber)

    async def record(
        self,
        *,
        group_id: str,
        action_type: AuditActionType,
        actor_id: str,
        target_id: str | None = None,
        details: str | None = None,
        subject_id: str | None = None,
    ) -> AuditLogEntry:
        """Append one entry and publish it.

        Raises whatever the repository raises: a mutation that cannot be
        logged must not proceed, so callers record before they mutate.

        Returns:
            The committed entry with its sequence assigned.
        """
        entry = AuditLogEntry(
            id=str(uuid4()),
            group_id=group_id,
            action_type=action_type,
            actor_id=actor_id,
            created_at=self._time.now(),
            target_id=target_id,
            details=details,
            subject_id=subject_id,
        )
        stored = await self._repository.append(entry)
        self._log_operation(
            "record",
            group_id=group_id,
            entry_id=stored.id,
        ).info(
            "audit_entry_recorded",
            action_type=action_type.value,
            sequence=stored.sequence,
        )
        await self._publish(stored)
        return stored

    async def record_moderation_entry(
        self,
        *,
        group_id: str,
        action_type: AuditActionType,
        actor_id: str,
        target_id: str | None = None,
        details: str | None = None,
    ) -> AuditLogEntry:
        """Accept an entry written by the AutoMod peer.

        Raises:
            InvalidOperationError: If the type is not a moderation type.
        """
        if action_type not in MODERATION_ACTIONS:
            raise InvalidOperationError(
                f"{action_type.value} is not a moderation entry type"
            )
        return await self.record(
            group_id=group_id,
            action_type=action_type,
            actor_id=actor_id,
            target_id=target_id,
            details=details,
        )

    async def get_entry(self, entry_id: str) -> AuditLogEntry:
        """Get an entry by id.

        Raises:
            NotFoundError: If no such entry exists.
        """
        entry = await self._repository.get_entry(entry_id)
        if entry is None:
            raise NotFoundError("audit_log_entry", entry_id)
        return entry

    async def query(
        self,
        group_id: str,
        log_filter: AuditLogFilter = AuditLogFilter.ALL,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> AuditLogPage:
        """Read a page of a group's ledger, newest first.

        Args:
            group_id: The group.
            log_filter: Category filter.
            limit: Page size (1-200); the configured default when None.
            cursor: ``next_cursor`` from the previous page.

        Returns:
            AuditLogPage with display names resolved.

        Raises:
            InvalidOperationError: For an out-of-range limit or a malformed cursor.
        """
        page_size = self._default_limit if limit is None else limit
        if not 1 <= page_size <= MAX_AUDIT_LOG_LIMIT:
            raise InvalidOperationError(
                f"limit must be between 1 and {MAX_AUDIT_LOG_LIMIT}, got {page_size}"
            )
        before = self._parse_cursor(cursor)

        # One extra row tells us whether another page exists
        rows = await self._repository.query(
            group_id,
            action_types=log_filter.action_types,
            limit=page_size + 1,
            before_sequence=before,
        )
        has_more = len(rows) > page_size
        rows = rows[:page_size]
        next_cursor = str(rows[-1].sequence) if has_more and rows else None

        entries = await self._with_names(rows)
        return AuditLogPage(entries=tuple(entries), next_cursor=next_cursor)

    async def count(self, group_id: str) -> int:
        return await self._repository.count(group_id)

    async def _with_names(self, entries: list[AuditLogEntry]) -> list[AuditLogEntry]:
        user_ids = {e.actor_id for e in entries if e.actor_id != SYSTEM_ACTOR_ID}
        user_ids.update(e.target_id for e in entries if e.target_id)
        profiles = (
            await self._profiles.get_profiles(user_ids)
            if self._profiles is not None and user_ids
            else {}
        )

        def name_of(user_id: str) -> str:
            if user_id == SYSTEM_ACTOR_ID:
                return SYSTEM_ACTOR_NAME
            profile = profiles.get(user_id)
            return profile.name if profile is not None else UNKNOWN_USER_NAME

        return [
            e.with_names(
                actor_name=name_of(e.actor_id),
                target_name=name_of(e.target_id) if e.target_id else None,
            )
            for e in entries
        ]

    async def _publish(self, entry: AuditLogEntry) -> None:
        for subscriber in self._subscribers:
            try:
                await subscriber.on_entry(entry)
            except Exception as e:
                # Delivery is the subscriber's concern; the entry is committed
                self._log.warning(
                    "audit_subscriber_failed",
                    entry_id=entry.id,
                    subscriber=type(subscriber).__name__,
                    error=str(e),
                )

    @staticmethod
    def _parse_cursor(cursor: str | None) -> int | None:
        if cursor is None or cursor == "":
            return None
        try:
            value = int(cursor)
        except ValueError:
            raise InvalidOperationError(f"Invalid cursor: {cursor!r}") from None
        if value < 1:
            raise InvalidOperationError(f"Invalid cursor: {cursor!r}")
        return value
