"""Join request domain model.

States: ``pending -> {approved, rejected}`` while the group is in
bootstrap mode, ``pending|voting -> {approved, rejected}`` otherwise.
Terminal states are immutable.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Final

from civic_consensus.domain.models.quorum import Ballot

JOIN_REQUEST_SUBJECT: Final[str] = "join_request"


class JoinRequestStatus(str, Enum):
    """Lifecycle state of a join request."""

    PENDING = "pending"
    VOTING = "voting"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (JoinRequestStatus.APPROVED, JoinRequestStatus.REJECTED)


@dataclass(frozen=True)
class JoinRequest:
    """A non-member's request to join a group.

    Attributes:
        id: Request identifier.
        group_id: Group being joined.
        user_id: Requesting user.
        message: Optional note to the managers.
        status: Current lifecycle state.
        votes: Ballots cast while in voting.
        required_votes: Quorum frozen at creation or escalation; None
            while the request is pending in bootstrap mode.
        created_at: Creation time.
        resolved_at: When a terminal state was reached.
    """

    id: str
    group_id: str
    user_id: str
    status: JoinRequestStatus
    created_at: datetime
    message: str = ""
    votes: tuple[Ballot, ...] = field(default_factory=tuple)
    required_votes: int | None = None
    resolved_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("id is required")
        if not self.group_id:
            raise ValueError("group_id is required")
        if not self.user_id:
            raise ValueError("user_id is required")
        if self.status == JoinRequestStatus.VOTING and self.required_votes is None:
            raise ValueError("voting requests must carry required_votes")

    @property
    def is_open(self) -> bool:
        return not self.status.is_terminal

    def has_voted(self, voter_id: str) -> bool:
        return any(b.voter_id == voter_id for b in self.votes)

    def escalate(self, required_votes: int) -> JoinRequest:
        """Move a pending request into formal voting."""
        return replace(self, status=JoinRequestStatus.VOTING, required_votes=required_votes)

    def with_vote(self, ballot: Ballot) -> JoinRequest:
        return replace(self, votes=self.votes + (ballot,))

    def resolve(self, status: JoinRequestStatus, resolved_at: datetime) -> JoinRequest:
        if not status.is_terminal:
            raise ValueError(f"{status.value} is not a terminal state")
        return replace(self, status=status, resolved_at=resolved_at)
