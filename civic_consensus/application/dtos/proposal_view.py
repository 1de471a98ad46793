"""Proposal as seen by one member of the group."""

from __future__ import annotations

from dataclasses import dataclass

from civic_consensus.domain.models.proposal import Proposal
from civic_consensus.domain.models.quorum import VoteChoice


@dataclass(frozen=True)
class ProposalView:
    """A proposal with per-viewer vote context.

    Attributes:
        proposal: The proposal.
        approve_count: Approving ballots.
        reject_count: Rejecting ballots.
        my_vote: The viewer's ballot, if any.
        is_target: The viewer is the proposal's subject and cannot vote.
        can_vote: The viewer may still vote on it.
        approve_label: What an approve vote means for this action.
    """

    proposal: Proposal
    approve_count: int
    reject_count: int
    my_vote: VoteChoice | None
    is_target: bool
    can_vote: bool
    approve_label: str

    @classmethod
    def for_viewer(cls, proposal: Proposal, viewer_id: str, viewer_is_manager: bool) -> ProposalView:
        is_target = proposal.target_user_id == viewer_id
        my_vote = proposal.vote_of(viewer_id)
        return cls(
            proposal=proposal,
            approve_count=proposal.approve_count,
            reject_count=proposal.reject_count,
            my_vote=my_vote,
            is_target=is_target,
            can_vote=(
                proposal.is_active and viewer_is_manager and not is_target and my_vote is None
            ),
            approve_label=proposal.action_type.spec.approve_label,
        )
