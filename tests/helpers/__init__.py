"""Test helpers for the governance engine tests.

Helpers:
    FakeTimeAuthority: Controllable time authority for deterministic tests
    GovernanceHarness: Engine wired over in-memory stubs, with seeding helpers

Usage:
    from tests.helpers import FakeTimeAuthority, GovernanceHarness
"""

from tests.helpers.fake_time_authority import FakeTimeAuthority
from tests.helpers.governance_harness import GovernanceHarness

__all__ = ["FakeTimeAuthority", "GovernanceHarness"]
