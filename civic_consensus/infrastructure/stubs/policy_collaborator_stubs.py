"""Stubs for the fund-creation and group-settings collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import uuid4

from civic_consensus.application.ports.policy_collaborators import (
    FundCreatorProtocol,
    GroupSettingsProtocol,
)


class CollaboratorUnavailableError(RuntimeError):
    """Raised by stubs when a failure has been injected."""


@dataclass(frozen=True)
class CreatedFund:
    """A fund recorded by FundCreatorStub."""

    fund_id: str
    group_id: str
    title: str
    description: str
    target_amount: Decimal


class FundCreatorStub(FundCreatorProtocol):
    """Records created funds; failure can be injected."""

    def __init__(self) -> None:
        self.funds: list[CreatedFund] = []
        self._failing = False

    def set_failure(self, failing: bool) -> None:
        self._failing = failing

    async def create_fund(
        self,
        group_id: str,
        title: str,
        description: str,
        target_amount: Decimal,
    ) -> str:
        if self._failing:
            raise CollaboratorUnavailableError("fund service unavailable")
        fund = CreatedFund(
            fund_id=str(uuid4()),
            group_id=group_id,
            title=title,
            description=description,
            target_amount=target_amount,
        )
        self.funds.append(fund)
        return fund.fund_id


class GroupSettingsStub(GroupSettingsProtocol):
    """In-memory group settings; failure can be injected."""

    def __init__(self) -> None:
        self.visibility: dict[str, bool] = {}
        self.descriptions: dict[str, str] = {}
        self._failing = False

    def set_failure(self, failing: bool) -> None:
        self._failing = failing

    async def set_visibility(self, group_id: str, is_public: bool) -> None:
        if self._failing:
            raise CollaboratorUnavailableError("settings service unavailable")
        self.visibility[group_id] = is_public

    async def set_description(self, group_id: str, description: str) -> None:
        if self._failing:
            raise CollaboratorUnavailableError("settings service unavailable")
        self.descriptions[group_id] = description
