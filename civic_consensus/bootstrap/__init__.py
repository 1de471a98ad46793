"""Bootstrap wiring: logging, database and governance engine."""
