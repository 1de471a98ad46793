"""HTTP surface of the governance engine (FastAPI)."""
