"""Direct membership operations.

Manager-initiated changes that do not go through a quorum vote: group
creation, role changes, removal of plain members, leaving, and the
founder's own transfer of the founder role. Each runs under the group
lock and applies the manager-count safeguards before touching the
registry.
"""

from __future__ import annotations

from civic_consensus.application.services.base import LoggingMixin
from civic_consensus.application.services.group_locks import GroupLockRegistry
from civic_consensus.application.services.health_evaluator_service import (
    HealthEvaluatorService,
)
from civic_consensus.application.services.membership_registry_service import (
    MembershipRegistryService,
)
from civic_consensus.domain.errors import (
    InvalidOperationError,
    InvalidTargetError,
    NotAuthorizedError,
    NotFoundError,
)
from civic_consensus.domain.models.audit_log import AuditActionType
from civic_consensus.domain.models.membership import Member, Role


class MemberManagementService(LoggingMixin):
    """Manager-initiated membership commands."""

    def __init__(
        self,
        registry: MembershipRegistryService,
        health: HealthEvaluatorService,
        locks: GroupLockRegistry,
        min_managers: int = 2,
    ) -> None:
        self._registry = registry
        self._health = health
        self._locks = locks
        self._min_managers = min_managers
        self._init_logger()

    async def create_group(self, group_id: str, founder_id: str) -> Member:
        """Seed a new group with its founder.

        Raises:
            InvalidOperationError: If the group already has members.
        """
        async with self._locks.hold(group_id):
            if await self._registry.group_exists(group_id):
                raise InvalidOperationError(f"Group {group_id} already exists")
            founder = await self._registry.add_member(
                group_id,
                founder_id,
                Role.FOUNDER,
                actor_id=founder_id,
                audit_action=AuditActionType.GROUP_CREATED,
                details="Created the group",
            )
        self._log_operation("create_group", group_id=group_id).info(
            "group_created", founder_id=founder_id
        )
        return founder

    async def update_member_role(
        self,
        group_id: str,
        actor_id: str,
        target_user_id: str,
        role: Role,
    ) -> Member:
        """Promote a member or demote a manager directly.

        Raises:
            NotAuthorizedError: If the caller is not a manager.
            InvalidTargetError: If a manager tries to demote themself or
                the target is the founder.
            NotFoundError: If the target is not a member.
            InvalidOperationError: If the demotion would break the
                manager-count rule or leave the group without managers.
        """
        if role == Role.FOUNDER:
            raise InvalidOperationError("Use the founder transfer to assign the founder role")
        async with self._locks.hold(group_id):
            await self._require_manager(group_id, actor_id)
            if target_user_id == actor_id and role == Role.MEMBER:
                raise InvalidTargetError(
                    "Cannot demote yourself. Ask another manager, or leave the group."
                )
            target_role = await self._registry.get_role(group_id, target_user_id)
            if target_role == Role.FOUNDER:
                raise InvalidTargetError(
                    "The founder's role cannot change; use the founder transfer instead"
                )

            if target_role == Role.MANAGER and role == Role.MEMBER:
                counts = await self._registry.count_by_role(group_id)
                in_governance = not self._health.is_bootstrap(counts)
                if in_governance and counts.manager_count <= self._min_managers:
                    raise InvalidOperationError(
                        f"Cannot demote: governance requires at least "
                        f"{self._min_managers} managers outside bootstrap mode"
                    )
                if counts.manager_count <= 1:
                    raise InvalidOperationError(
                        "Cannot demote the last manager. Promote someone else first."
                    )

            return await self._registry.set_role(
                group_id,
                target_user_id,
                role,
                actor_id=actor_id,
            )

    async def remove_member(
        self,
        group_id: str,
        actor_id: str,
        target_user_id: str,
    ) -> Member:
        """Remove a plain member immediately.

        Raises:
            NotAuthorizedError: If the caller is not a manager.
            InvalidTargetError: For the caller themself or the founder.
            InvalidOperationError: If the target is a manager.
            GovernanceViolationError: While the group is in violation.
        """
        async with self._locks.hold(group_id):
            await self._require_manager(group_id, actor_id)
            if target_user_id == actor_id:
                raise InvalidTargetError("Cannot remove yourself. Leave the group instead.")
            target_role = await self._registry.get_role(group_id, target_user_id)
            if target_role == Role.FOUNDER:
                raise InvalidTargetError("The founder is immune to removal")
            if target_role == Role.MANAGER:
                raise InvalidOperationError(
                    "Cannot remove a manager. Demote them first, then remove."
                )
            counts = await self._registry.count_by_role(group_id)
            self._health.ensure_no_violation(group_id, counts)
            return await self._registry.remove_member(
                group_id, target_user_id, actor_id=actor_id
            )

    async def leave_group(self, group_id: str, user_id: str) -> Member:
        """Leave a group.

        Raises:
            NotFoundError: If the user is not a member.
            InvalidOperationError: For the founder, the last manager of a
                non-empty group, or a manager whose departure would break
                the manager-count rule.
        """
        async with self._locks.hold(group_id):
            role = await self._registry.get_role(group_id, user_id)
            if role == Role.FOUNDER:
                raise InvalidOperationError(
                    "Founders cannot leave. Transfer the founder role first."
                )
            if role == Role.MANAGER:
                counts = await self._registry.count_by_role(group_id)
                if counts.manager_count <= 1 and counts.total > 1:
                    raise InvalidOperationError(
                        "The last manager cannot leave. Promote someone else first."
                    )
                in_governance = not self._health.is_bootstrap(counts)
                if in_governance and counts.manager_count <= self._min_managers:
                    raise InvalidOperationError(
                        f"Cannot leave: governance requires at least {self._min_managers} "
                        f"managers. Promote another member first."
                    )
            return await self._registry.remove_member(
                group_id,
                user_id,
                actor_id=user_id,
                audit_action=AuditActionType.LEAVE,
            )

    async def transfer_founder(
        self,
        group_id: str,
        actor_id: str,
        new_founder_id: str,
    ) -> tuple[Member, Member]:
        """Hand the founder role to an existing manager.

        Raises:
            NotAuthorizedError: If the caller is not the founder.
            InvalidTargetError: If the founder targets themself.
            NotFoundError: If the target is not a member.
            InvalidOperationError: If the target is not a manager.
        """
        async with self._locks.hold(group_id):
            role = await self._registry.find_role(group_id, actor_id)
            if role != Role.FOUNDER:
                raise NotAuthorizedError("Only the founder can transfer the founder role")
            if new_founder_id == actor_id:
                raise InvalidTargetError("You already hold the founder role")
            return await self._registry.transfer_founder(
                group_id, new_founder_id, actor_id=actor_id
            )

    async def _require_manager(self, group_id: str, user_id: str) -> Role:
        role = await self._registry.find_role(group_id, user_id)
        if role is None or not role.is_manager:
            if not await self._registry.group_exists(group_id):
                raise NotFoundError("group", group_id)
            raise NotAuthorizedError("Only managers can manage members")
        return role
