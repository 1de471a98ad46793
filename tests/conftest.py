"""
Pytest configuration and shared fixtures for the governance engine tests.

Testing Standards:
- All async tests use pytest.mark.asyncio (auto mode enabled in pyproject.toml)
- Time-dependent tests use FakeTimeAuthority, never the wall clock
- Unit tests go in tests/unit/
- Integration scenarios go in tests/integration/
"""

import pytest

from civic_consensus.bootstrap.governance import reset_governance_dependencies
from tests.helpers import FakeTimeAuthority, GovernanceHarness


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from civic_consensus import __version__

    return __version__


@pytest.fixture
def fake_time_authority() -> FakeTimeAuthority:
    """A frozen clock at the default test time."""
    return FakeTimeAuthority()


@pytest.fixture
def harness() -> GovernanceHarness:
    """Governance engine over fresh in-memory stubs."""
    return GovernanceHarness()


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Keep bootstrap singletons from leaking between tests."""
    yield
    reset_governance_dependencies()
