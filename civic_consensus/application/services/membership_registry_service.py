"""Membership Registry service.

Authoritative role of every user within a group and the source of
quorum size. Counts are derived from the live member list on every
call.

Every mutation appends its audit entry before the membership write
(write-ahead): if the entry cannot be recorded, the mutation does not
happen.

The registry does not check who is asking. Authorization lives in the
workflows and in MemberManagementService, which also hold the group
lock around these calls.
"""

from __future__ import annotations

from civic_consensus.application.ports.membership_repository import (
    MembershipRepositoryProtocol,
)
from civic_consensus.application.ports.time_authority import TimeAuthorityProtocol
from civic_consensus.application.services.audit_log_service import AuditLogService
from civic_consensus.application.services.base import LoggingMixin
from civic_consensus.domain.errors import InvalidOperationError, NotFoundError
from civic_consensus.domain.models.audit_log import AuditActionType
from civic_consensus.domain.models.membership import Member, Role, RoleCounts


class MembershipRegistryService(LoggingMixin):
    """Role storage with write-ahead audit entries."""

    def __init__(
        self,
        repository: MembershipRepositoryProtocol,
        audit_log: AuditLogService,
        time_authority: TimeAuthorityProtocol,
    ) -> None:
        self._repository = repository
        self._audit = audit_log
        self._time = time_authority
        self._init_logger()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def find_role(self, group_id: str, user_id: str) -> Role | None:
        """Role of a user, or None when the user is not a member."""
        member = await self._repository.get_member(group_id, user_id)
        return member.role if member is not None else None

    async def get_role(self, group_id: str, user_id: str) -> Role:
        """Role of a user.

        Raises:
            NotFoundError: If the user is not a member of the group.
        """
        role = await self.find_role(group_id, user_id)
        if role is None:
            raise NotFoundError("member", user_id)
        return role

    async def list_members(self, group_id: str) -> list[Member]:
        return await self._repository.list_members(group_id)

    async def count_by_role(self, group_id: str) -> RoleCounts:
        return RoleCounts.from_members(await self._repository.list_members(group_id))

    async def manager_ids(self, group_id: str) -> list[str]:
        """Ids of every member allowed to vote (founder included)."""
        members = await self._repository.list_members(group_id)
        return [m.user_id for m in members if m.is_manager]

    async def group_exists(self, group_id: str) -> bool:
        return bool(await self._repository.list_members(group_id))

    async def require_group(self, group_id: str) -> RoleCounts:
        """Role counts of an existing group.

        Raises:
            NotFoundError: If the group has no members.
        """
        counts = await self.count_by_role(group_id)
        if counts.total == 0:
            raise NotFoundError("group", group_id)
        return counts

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def add_member(
        self,
        group_id: str,
        user_id: str,
        role: Role = Role.MEMBER,
        *,
        actor_id: str,
        audit_action: AuditActionType = AuditActionType.JOIN,
        details: str | None = None,
        subject_id: str | None = None,
    ) -> Member:
        """Add a user to a group.

        Args:
            group_id: The group.
            user_id: The user joining.
            role: Initial role. ``founder`` only for a group with no founder.
            actor_id: Who caused the join.
            audit_action: Entry type describing the join (``join``,
                ``vote_resolution_approved``, ``revert_removal``,
                ``group_created``).
            details: Entry details.
            subject_id: Join request or proposal behind the join.

        Raises:
            InvalidOperationError: If the user is already a member, or a
                second founder would be created.
        """
        if await self._repository.get_member(group_id, user_id) is not None:
            raise InvalidOperationError(f"User {user_id} is already a member of this group")
        if role == Role.FOUNDER:
            counts = await self.count_by_role(group_id)
            if counts.founder:
                raise InvalidOperationError("Group already has a founder")

        member = Member(
            group_id=group_id,
            user_id=user_id,
            role=role,
            joined_at=self._time.now(),
        )
        await self._audit.record(
            group_id=group_id,
            action_type=audit_action,
            actor_id=actor_id,
            target_id=user_id,
            details=details or f"Joined as {role.value}",
            subject_id=subject_id,
        )
        await self._repository.save_member(member)
        self._log_operation("add_member", group_id=group_id, user_id=user_id).info(
            "member_added", role=role.value
        )
        return member

    async def set_role(
        self,
        group_id: str,
        user_id: str,
        role: Role,
        *,
        actor_id: str,
        details: str | None = None,
        subject_id: str | None = None,
    ) -> Member:
        """Change a member's role between manager and member.

        Writes a ``promotion`` or ``demotion`` entry.

        Raises:
            NotFoundError: If the user is not a member.
            InvalidOperationError: For the founder, a founder target role,
                or a role the member already holds.
        """
        member = await self._repository.get_member(group_id, user_id)
        if member is None:
            raise NotFoundError("member", user_id)
        if member.role == Role.FOUNDER or role == Role.FOUNDER:
            raise InvalidOperationError(
                "The founder role only changes through a founder transfer"
            )
        if member.role == role:
            raise InvalidOperationError(f"User {user_id} is already a {role.value}")

        action = AuditActionType.PROMOTION if role == Role.MANAGER else AuditActionType.DEMOTION
        await self._audit.record(
            group_id=group_id,
            action_type=action,
            actor_id=actor_id,
            target_id=user_id,
            details=details or f"Changed role to {role.value}",
            subject_id=subject_id,
        )
        updated = member.with_role(role)
        await self._repository.save_member(updated)
        self._log_operation("set_role", group_id=group_id, user_id=user_id).info(
            "member_role_changed", old_role=member.role.value, new_role=role.value
        )
        return updated

    async def remove_member(
        self,
        group_id: str,
        user_id: str,
        *,
        actor_id: str,
        audit_action: AuditActionType = AuditActionType.REMOVAL,
        details: str | None = None,
        subject_id: str | None = None,
    ) -> Member:
        """Remove a user from a group.

        Raises:
            NotFoundError: If the user is not a member.
            InvalidOperationError: If the user is the founder.
        """
        member = await self._repository.get_member(group_id, user_id)
        if member is None:
            raise NotFoundError("member", user_id)
        if member.role == Role.FOUNDER:
            raise InvalidOperationError(
                "The founder cannot be removed; transfer the founder role first"
            )

        if details is None:
            left = audit_action == AuditActionType.LEAVE
            details = "Left the group" if left else "Removed from group"
        await self._audit.record(
            group_id=group_id,
            action_type=audit_action,
            actor_id=actor_id,
            target_id=user_id,
            details=details,
            subject_id=subject_id,
        )
        await self._repository.delete_member(group_id, user_id)
        self._log_operation("remove_member", group_id=group_id, user_id=user_id).info(
            "member_removed", action=audit_action.value
        )
        return member

    async def transfer_founder(
        self,
        group_id: str,
        new_founder_id: str,
        *,
        actor_id: str,
        subject_id: str | None = None,
    ) -> tuple[Member, Member]:
        """Swap the founder role onto an existing manager.

        The old founder becomes a manager and the target becomes founder
        in one repository write, so the group never has zero or two
        founders.

        Returns:
            (old founder as manager, new founder).

        Raises:
            NotFoundError: If the target is not a member or the group has
                no founder.
            InvalidOperationError: If the target is not a manager.
        """
        members = await self._repository.list_members(group_id)
        founder = next((m for m in members if m.role == Role.FOUNDER), None)
        if founder is None:
            raise NotFoundError("founder", group_id)
        target = next((m for m in members if m.user_id == new_founder_id), None)
        if target is None:
            raise NotFoundError("member", new_founder_id)
        if target.role != Role.MANAGER:
            raise InvalidOperationError(
                "The founder role can only go to an existing manager. Promote them first."
            )

        await self._audit.record(
            group_id=group_id,
            action_type=AuditActionType.TRANSFER_FOUNDER,
            actor_id=actor_id,
            target_id=new_founder_id,
            details=f"Transferred founder role from {founder.user_id}",
            subject_id=subject_id,
        )
        old_founder = founder.with_role(Role.MANAGER)
        new_founder = target.with_role(Role.FOUNDER)
        await self._repository.save_members([old_founder, new_founder])
        self._log_operation("transfer_founder", group_id=group_id).info(
            "founder_transferred",
            old_founder_id=founder.user_id,
            new_founder_id=new_founder_id,
        )
        return old_founder, new_founder
