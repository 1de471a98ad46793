"""FastAPI dependencies."""

from civic_consensus.api.dependencies.governance import get_caller_id, get_engine

__all__ = ["get_caller_id", "get_engine"]
