"""Pure domain services (no I/O)."""
