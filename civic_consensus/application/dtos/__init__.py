"""Application-layer DTOs.

The API layer converts these to pydantic response models, so the
application layer never depends on the API layer.
"""

from civic_consensus.application.dtos.execution import ExecutionResult
from civic_consensus.application.dtos.proposal_view import ProposalView

__all__ = ["ExecutionResult", "ProposalView"]
