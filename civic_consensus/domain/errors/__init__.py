"""Domain errors for the governance engine.

All exceptions inherit from GovernanceEngineError.
"""

from civic_consensus.domain.errors.governance import (
    PROMOTION_REQUIRED_HINT,
    AlreadyVotedError,
    ExecutionFailedError,
    GovernanceViolationError,
    InvalidOperationError,
    InvalidTargetError,
    NotAuthorizedError,
    NotFoundError,
)
from civic_consensus.domain.exceptions import GovernanceEngineError

__all__: list[str] = [
    "PROMOTION_REQUIRED_HINT",
    "AlreadyVotedError",
    "ExecutionFailedError",
    "GovernanceEngineError",
    "GovernanceViolationError",
    "InvalidOperationError",
    "InvalidTargetError",
    "NotAuthorizedError",
    "NotFoundError",
]
