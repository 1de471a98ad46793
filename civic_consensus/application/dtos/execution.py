"""Resolution executor result."""

from dataclasses import dataclass

from civic_consensus.domain.models.audit_log import AuditActionType
from civic_consensus.domain.models.proposal import ProposalActionType


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of applying an approved proposal's effect.

    Attributes:
        proposal_id: The proposal executed.
        action_type: Its action.
        effect: Audit entry type the effect was recorded under.
        reference: Collaborator-issued id, e.g. the created fund.
        replayed: True when an earlier execution was returned unchanged.
    """

    proposal_id: str
    action_type: ProposalActionType
    effect: AuditActionType | None
    reference: str | None = None
    replayed: bool = False
