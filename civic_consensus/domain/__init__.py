"""Domain layer for the governance engine.

Contains the entities, value objects, pure quorum and health math and
the error taxonomy. Nothing in this package performs I/O.
"""
