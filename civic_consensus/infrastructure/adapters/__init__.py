"""Production adapters for ports."""
