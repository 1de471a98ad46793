"""Background workers."""

from civic_consensus.workers.proposal_expiry_worker import ProposalExpiryWorker

__all__ = ["ProposalExpiryWorker"]
