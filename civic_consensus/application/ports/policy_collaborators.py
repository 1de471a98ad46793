"""Ports for collaborators that carry out approved policy decisions.

Fund creation and group settings live outside the engine. Failures
raised from these calls surface as ``ExecutionFailedError``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol


class FundCreatorProtocol(Protocol):
    """Creates community funds on ``approve_fund`` execution."""

    async def create_fund(
        self,
        group_id: str,
        title: str,
        description: str,
        target_amount: Decimal,
    ) -> str:
        """Create a fund and return its id."""
        ...


class GroupSettingsProtocol(Protocol):
    """Writes group settings on visibility and description changes."""

    async def set_visibility(self, group_id: str, is_public: bool) -> None:
        """Set whether the group is publicly listed."""
        ...

    async def set_description(self, group_id: str, description: str) -> None:
        """Replace the group description."""
        ...
