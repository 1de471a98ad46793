"""Membership domain models.

The Membership Registry is the single source of truth for roles. Counts
are always derived from the live member list, never stored.

Governance Rules:
- Exactly one founder per group
- The founder counts as a manager for quorum and eligibility
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Role of a user within a group."""

    FOUNDER = "founder"
    MANAGER = "manager"
    MEMBER = "member"

    @property
    def is_manager(self) -> bool:
        """True for roles that may vote and propose (founder included)."""
        return self in (Role.FOUNDER, Role.MANAGER)


@dataclass(frozen=True)
class Member:
    """A user's membership in a group.

    Attributes:
        group_id: The group.
        user_id: The member.
        role: Current role.
        joined_at: When the membership was created.
    """

    group_id: str
    user_id: str
    role: Role
    joined_at: datetime

    def __post_init__(self) -> None:
        if not self.group_id:
            raise ValueError("group_id is required")
        if not self.user_id:
            raise ValueError("user_id is required")

    @property
    def is_manager(self) -> bool:
        """True if this member may vote on governance decisions."""
        return self.role.is_manager

    def with_role(self, role: Role) -> Member:
        """Return a copy of this membership with a different role."""
        return replace(self, role=role)


@dataclass(frozen=True)
class RoleCounts:
    """Role distribution of a group, derived from the member list.

    Attributes:
        founder: 0 or 1.
        manager: Number of managers, founder excluded.
        member: Number of plain members.
    """

    founder: int = 0
    manager: int = 0
    member: int = 0

    @classmethod
    def from_members(cls, members: list[Member]) -> RoleCounts:
        """Count roles over a live member list."""
        return cls(
            founder=sum(1 for m in members if m.role == Role.FOUNDER),
            manager=sum(1 for m in members if m.role == Role.MANAGER),
            member=sum(1 for m in members if m.role == Role.MEMBER),
        )

    @property
    def total(self) -> int:
        """Total number of members in the group."""
        return self.founder + self.manager + self.member

    @property
    def manager_count(self) -> int:
        """Managers for quorum purposes (founder included)."""
        return self.founder + self.manager

    def to_dict(self) -> dict[str, int]:
        return {"founder": self.founder, "manager": self.manager, "member": self.member}
