"""Governance error taxonomy.

Validation errors (already voted, invalid target, not authorized, not
found) are raised before any state is touched. ``ExecutionFailedError``
is the only error raised after a quorum decision has been reached.
"""

from __future__ import annotations

from civic_consensus.domain.exceptions import GovernanceEngineError

PROMOTION_REQUIRED_HINT = (
    "Promote a member to manager so the group has at least two managers."
)


class AlreadyVotedError(GovernanceEngineError):
    """Raised when a manager votes twice on the same proposal or request.

    Attributes:
        subject_id: The proposal or join request id.
        voter_id: The manager who already voted.
    """

    code = "ALREADY_VOTED"

    def __init__(self, subject_id: str, voter_id: str) -> None:
        self.subject_id = subject_id
        self.voter_id = voter_id
        super().__init__(f"You have already voted on {subject_id}")


class InvalidTargetError(GovernanceEngineError):
    """Raised for self-targeting, self-voting or founder-immunity violations."""

    code = "INVALID_TARGET"


class GovernanceViolationError(GovernanceEngineError):
    """Raised when an operation is blocked by the manager-count rule.

    Carries a remediation hint instead of being a bare failure.

    Attributes:
        group_id: The group in violation.
        manager_count: Current number of managers (founder included).
        remediation_hint: What the caller can do to clear the violation.
    """

    code = "GOVERNANCE_VIOLATION"

    def __init__(
        self,
        group_id: str,
        manager_count: int,
        remediation_hint: str = PROMOTION_REQUIRED_HINT,
    ) -> None:
        self.group_id = group_id
        self.manager_count = manager_count
        self.remediation_hint = remediation_hint
        super().__init__(
            f"GovernanceError: promotion required. Group has {manager_count} "
            f"manager(s); voting is disabled until the group has at least two."
        )

    def to_dict(self) -> dict[str, str]:
        data = super().to_dict()
        data["remediation_hint"] = self.remediation_hint
        return data


class NotAuthorizedError(GovernanceEngineError):
    """Raised when the caller lacks the role an operation requires."""

    code = "NOT_AUTHORIZED"


class NotFoundError(GovernanceEngineError):
    """Raised when a proposal, join request, member or log entry is absent.

    Attributes:
        resource: Kind of resource (``proposal``, ``member`` ...).
        resource_id: Identifier that was looked up.
    """

    code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: str) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource.replace('_', ' ').capitalize()} not found: {resource_id}")


class InvalidOperationError(GovernanceEngineError):
    """Raised for operations the current state does not permit.

    Examples: removing the founder, voting on a terminal proposal,
    proposing an action that does not match the target's role.
    """

    code = "INVALID_OPERATION"


class ExecutionFailedError(GovernanceEngineError):
    """Raised when a delegated effect fails after quorum was reached.

    The proposal is left in ``execution_failed`` and can be retried.

    Attributes:
        proposal_id: The proposal whose effect failed.
        cause: Description of the collaborator failure.
    """

    code = "EXECUTION_FAILED"

    def __init__(self, proposal_id: str, cause: str) -> None:
        self.proposal_id = proposal_id
        self.cause = cause
        super().__init__(
            f"Proposal {proposal_id} was approved but its effect could not be "
            f"applied: {cause}"
        )
