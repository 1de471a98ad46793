"""Infrastructure layer: storage adapters, stubs and observability."""
