"""Quorum math shared by join requests and proposals.

The resolution rule is deterministic: given the same ballots and the
same eligible voters it always produces the same outcome.

- ``approve_count >= required_votes`` resolves approved.
- If the outstanding eligible voters could no longer lift
  ``approve_count`` to ``required_votes``, resolve rejected early.
- Otherwise the decision stays open.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class VoteChoice(str, Enum):
    """A manager's vote."""

    APPROVE = "approve"
    REJECT = "reject"


class QuorumOutcome(str, Enum):
    """Result of evaluating ballots against the quorum."""

    APPROVED = "approved"
    REJECTED = "rejected"
    PENDING = "pending"


@dataclass(frozen=True)
class Ballot:
    """One recorded vote.

    Attributes:
        voter_id: The manager who voted.
        vote: Approve or reject.
        cast_at: When the vote was recorded.
    """

    voter_id: str
    vote: VoteChoice
    cast_at: datetime

    def to_dict(self) -> dict[str, str]:
        return {
            "voter_id": self.voter_id,
            "vote": self.vote.value,
            "cast_at": self.cast_at.isoformat(),
        }


def required_votes(manager_count: int) -> int:
    """Quorum for a decision: ``ceil(manager_count / 2)``, at least one.

    Args:
        manager_count: Managers in the group (founder included).

    Returns:
        Number of approvals needed to resolve as approved.
    """
    if manager_count < 0:
        raise ValueError(f"manager_count must be >= 0, got {manager_count}")
    return max(1, math.ceil(manager_count / 2))


@dataclass(frozen=True)
class QuorumTally:
    """Vote counts and the outcome they imply.

    Attributes:
        approve_count: Approving ballots.
        reject_count: Rejecting ballots.
        outstanding: Eligible voters who have not voted yet.
        required_votes: Approvals needed.
        outcome: Resolution implied by the counts.
    """

    approve_count: int
    reject_count: int
    outstanding: int
    required_votes: int
    outcome: QuorumOutcome

    @property
    def is_resolved(self) -> bool:
        return self.outcome != QuorumOutcome.PENDING


def tally(
    ballots: Sequence[Ballot],
    eligible_voter_ids: Iterable[str],
    required: int,
) -> QuorumTally:
    """Evaluate ballots against the quorum.

    Args:
        ballots: Votes recorded so far.
        eligible_voter_ids: Managers currently allowed to vote.
        required: Approvals needed (frozen at creation).

    Returns:
        QuorumTally with the implied outcome.
    """
    approve_count = sum(1 for b in ballots if b.vote == VoteChoice.APPROVE)
    reject_count = sum(1 for b in ballots if b.vote == VoteChoice.REJECT)
    voted = {b.voter_id for b in ballots}
    outstanding = len(set(eligible_voter_ids) - voted)

    if approve_count >= required:
        outcome = QuorumOutcome.APPROVED
    elif approve_count + outstanding < required:
        outcome = QuorumOutcome.REJECTED
    else:
        outcome = QuorumOutcome.PENDING

    return QuorumTally(
        approve_count=approve_count,
        reject_count=reject_count,
        outstanding=outstanding,
        required_votes=required,
        outcome=outcome,
    )
