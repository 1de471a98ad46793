"""Resolution Executor service.

Applies the effect of an approved proposal, either to the Membership
Registry or through the fund-creation and group-settings collaborators.

Each action type maps to exactly one handler; the table is checked for
completeness at import. Every execution appends exactly one audit
entry: the effect entry on success (written by the registry for
membership effects) or ``proposal_execution_failed`` on failure.

Execution is idempotent per proposal id: a proposal that already
executed returns its earlier result without re-applying the effect.
Results are held only until the caller commits the proposal and
releases them.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Final, TypeVar

from civic_consensus.application.dtos.execution import ExecutionResult
from civic_consensus.application.ports.policy_collaborators import (
    FundCreatorProtocol,
    GroupSettingsProtocol,
)
from civic_consensus.application.services.audit_log_service import AuditLogService
from civic_consensus.application.services.base import LoggingMixin
from civic_consensus.application.services.membership_registry_service import (
    MembershipRegistryService,
)
from civic_consensus.domain.errors import ExecutionFailedError
from civic_consensus.domain.models.audit_log import AuditActionType
from civic_consensus.domain.models.membership import Role
from civic_consensus.domain.models.proposal import (
    CustomPayload,
    DescriptionPayload,
    FundPayload,
    Proposal,
    ProposalActionType,
    ProposalStatus,
    VisibilityPayload,
)

P = TypeVar("P")

Handler = Callable[["ResolutionExecutorService", Proposal, str], Awaitable[ExecutionResult]]


class ResolutionExecutorService(LoggingMixin):
    """Maps an approved proposal to its effect."""

    def __init__(
        self,
        registry: MembershipRegistryService,
        audit_log: AuditLogService,
        fund_creator: FundCreatorProtocol,
        group_settings: GroupSettingsProtocol,
    ) -> None:
        self._registry = registry
        self._audit = audit_log
        self._funds = fund_creator
        self._settings = group_settings
        self._results: dict[str, ExecutionResult] = {}
        self._init_logger()

    async def execute(self, proposal: Proposal, *, actor_id: str) -> ExecutionResult:
        """Apply the proposal's effect once.

        Args:
            proposal: A proposal that reached quorum (active or
                execution_failed), or an already-approved one.
            actor_id: The voter whose ballot completed the quorum.

        Returns:
            ExecutionResult; ``replayed`` is set when nothing was applied.

        Raises:
            ExecutionFailedError: If the effect could not be applied. The
                failure entry has already been written.
        """
        log = self._log_operation(
            "execute",
            group_id=proposal.group_id,
            proposal_id=proposal.id,
            action_type=proposal.action_type.value,
        )

        prior = self._results.get(proposal.id)
        if prior is not None:
            log.info("execution_replayed")
            return ExecutionResult(
                proposal_id=prior.proposal_id,
                action_type=prior.action_type,
                effect=prior.effect,
                reference=prior.reference,
                replayed=True,
            )
        if proposal.status == ProposalStatus.APPROVED:
            # Executed before this process started; never re-apply
            log.info("execution_replayed", source="status")
            return ExecutionResult(
                proposal_id=proposal.id,
                action_type=proposal.action_type,
                effect=None,
                replayed=True,
            )

        handler = _HANDLERS[proposal.action_type]
        try:
            result = await handler(self, proposal, actor_id)
        except Exception as e:
            cause = str(e) or type(e).__name__
            log.error("proposal_execution_failed", error=cause)
            await self._audit.record(
                group_id=proposal.group_id,
                action_type=AuditActionType.PROPOSAL_EXECUTION_FAILED,
                actor_id=actor_id,
                target_id=proposal.target_user_id,
                details=f"{proposal.action_type.spec.label} failed: {cause}",
                subject_id=proposal.id,
            )
            raise ExecutionFailedError(proposal.id, cause) from e

        self._results[proposal.id] = result
        log.info("proposal_executed", effect=result.effect.value if result.effect else None)
        return result

    def has_applied(self, proposal_id: str) -> bool:
        """True while an applied effect awaits the proposal's commit."""
        return proposal_id in self._results

    def release(self, proposal_id: str) -> None:
        """Forget the result of a committed proposal.

        Once the proposal is stored approved, its status alone guards
        against re-application.
        """
        self._results.pop(proposal_id, None)

    # -------------------------------------------------------------------------
    # Membership effects
    # -------------------------------------------------------------------------

    async def _make_manager(self, proposal: Proposal, actor_id: str) -> ExecutionResult:
        await self._registry.set_role(
            proposal.group_id,
            _target(proposal),
            Role.MANAGER,
            actor_id=actor_id,
            details=_details(proposal),
            subject_id=proposal.id,
        )
        return _result(proposal, AuditActionType.PROMOTION)

    async def _make_member(self, proposal: Proposal, actor_id: str) -> ExecutionResult:
        # reconfirm_manager lands here too: approve means no confidence
        await self._registry.set_role(
            proposal.group_id,
            _target(proposal),
            Role.MEMBER,
            actor_id=actor_id,
            details=_details(proposal),
            subject_id=proposal.id,
        )
        return _result(proposal, AuditActionType.DEMOTION)

    async def _kick(self, proposal: Proposal, actor_id: str) -> ExecutionResult:
        await self._registry.remove_member(
            proposal.group_id,
            _target(proposal),
            actor_id=actor_id,
            details=_details(proposal),
            subject_id=proposal.id,
        )
        return _result(proposal, AuditActionType.REMOVAL)

    async def _reinstate(self, proposal: Proposal, actor_id: str) -> ExecutionResult:
        await self._registry.add_member(
            proposal.group_id,
            _target(proposal),
            Role.MEMBER,
            actor_id=actor_id,
            audit_action=AuditActionType.REVERT_REMOVAL,
            details=_details(proposal),
            subject_id=proposal.id,
        )
        return _result(proposal, AuditActionType.REVERT_REMOVAL)

    async def _transfer_founder(self, proposal: Proposal, actor_id: str) -> ExecutionResult:
        await self._registry.transfer_founder(
            proposal.group_id,
            _target(proposal),
            actor_id=actor_id,
            subject_id=proposal.id,
        )
        return _result(proposal, AuditActionType.TRANSFER_FOUNDER)

    # -------------------------------------------------------------------------
    # Policy effects
    # -------------------------------------------------------------------------

    async def _approve_fund(self, proposal: Proposal, actor_id: str) -> ExecutionResult:
        payload = _payload(proposal, FundPayload)
        fund_id = await self._funds.create_fund(
            proposal.group_id,
            payload.title,
            payload.description,
            payload.target_amount,
        )
        await self._audit.record(
            group_id=proposal.group_id,
            action_type=AuditActionType.FUND_APPROVED,
            actor_id=actor_id,
            details=f"Fund '{payload.title}' created with target {payload.target_amount}",
            subject_id=proposal.id,
        )
        return _result(proposal, AuditActionType.FUND_APPROVED, reference=fund_id)

    async def _change_visibility(self, proposal: Proposal, actor_id: str) -> ExecutionResult:
        payload = _payload(proposal, VisibilityPayload)
        await self._settings.set_visibility(proposal.group_id, payload.is_public)
        await self._audit.record(
            group_id=proposal.group_id,
            action_type=AuditActionType.VISIBILITY_CHANGED,
            actor_id=actor_id,
            details="Group is now public" if payload.is_public else "Group is now private",
            subject_id=proposal.id,
        )
        return _result(proposal, AuditActionType.VISIBILITY_CHANGED)

    async def _amend_description(self, proposal: Proposal, actor_id: str) -> ExecutionResult:
        payload = _payload(proposal, DescriptionPayload)
        await self._settings.set_description(proposal.group_id, payload.description)
        await self._audit.record(
            group_id=proposal.group_id,
            action_type=AuditActionType.DESCRIPTION_AMENDED,
            actor_id=actor_id,
            details=payload.description,
            subject_id=proposal.id,
        )
        return _result(proposal, AuditActionType.DESCRIPTION_AMENDED)

    async def _custom(self, proposal: Proposal, actor_id: str) -> ExecutionResult:
        _payload(proposal, CustomPayload)
        await self._audit.record(
            group_id=proposal.group_id,
            action_type=AuditActionType.CUSTOM_POLICY_PENDING,
            actor_id=actor_id,
            details=f"'{proposal.title}' approved; awaiting manual follow-up",
            subject_id=proposal.id,
        )
        return _result(proposal, AuditActionType.CUSTOM_POLICY_PENDING)


def _target(proposal: Proposal) -> str:
    if proposal.target_user_id is None:
        raise ValueError(f"{proposal.action_type.value} proposal has no target")
    return proposal.target_user_id


def _payload(proposal: Proposal, kind: type[P]) -> P:
    if not isinstance(proposal.policy_payload, kind):
        raise ValueError(
            f"{proposal.action_type.value} proposal carries the wrong payload type"
        )
    return proposal.policy_payload


def _details(proposal: Proposal) -> str:
    return proposal.description or f"{proposal.action_type.spec.label} (proposal {proposal.id})"


def _result(
    proposal: Proposal, effect: AuditActionType, reference: str | None = None
) -> ExecutionResult:
    return ExecutionResult(
        proposal_id=proposal.id,
        action_type=proposal.action_type,
        effect=effect,
        reference=reference,
    )


_HANDLERS: Final[dict[ProposalActionType, Handler]] = {
    ProposalActionType.PROMOTE: ResolutionExecutorService._make_manager,
    ProposalActionType.REVERT_DEMOTION: ResolutionExecutorService._make_manager,
    ProposalActionType.DEMOTE: ResolutionExecutorService._make_member,
    ProposalActionType.REVERT_PROMOTION: ResolutionExecutorService._make_member,
    ProposalActionType.RECONFIRM_MANAGER: ResolutionExecutorService._make_member,
    ProposalActionType.KICK: ResolutionExecutorService._kick,
    ProposalActionType.REVERT_REMOVAL: ResolutionExecutorService._reinstate,
    ProposalActionType.TRANSFER_FOUNDER: ResolutionExecutorService._transfer_founder,
    ProposalActionType.APPROVE_FUND: ResolutionExecutorService._approve_fund,
    ProposalActionType.CHANGE_VISIBILITY: ResolutionExecutorService._change_visibility,
    ProposalActionType.AMEND_DESCRIPTION: ResolutionExecutorService._amend_description,
    ProposalActionType.CUSTOM: ResolutionExecutorService._custom,
}

_unhandled = set(ProposalActionType) - set(_HANDLERS)
if _unhandled:
    raise RuntimeError(f"No execution handler for {sorted(a.value for a in _unhandled)}")
