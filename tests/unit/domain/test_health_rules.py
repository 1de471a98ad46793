"""Unit tests for the pure governance health rules."""

from datetime import datetime, timezone

import pytest

from civic_consensus.domain.models.governance_health import (
    ComplianceStatus,
    GovernanceHealthStatus,
    GovernanceRule,
)
from civic_consensus.domain.models.membership import RoleCounts
from civic_consensus.domain.services import health_rules

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


class TestBootstrapAndViolation:
    @pytest.mark.parametrize(
        ("counts", "expected"),
        [
            (RoleCounts(founder=1), True),
            (RoleCounts(founder=1, member=2), True),
            (RoleCounts(founder=1, member=3), False),
        ],
    )
    def test_bootstrap_is_three_or_fewer_members(
        self, counts: RoleCounts, expected: bool
    ) -> None:
        assert health_rules.is_bootstrap(counts) is expected

    def test_single_manager_outside_bootstrap_is_a_violation(self) -> None:
        assert health_rules.has_governance_violation(RoleCounts(founder=1, member=3))

    def test_single_manager_in_bootstrap_is_fine(self) -> None:
        assert not health_rules.has_governance_violation(RoleCounts(founder=1, member=2))

    def test_two_managers_clear_the_violation(self) -> None:
        assert not health_rules.has_governance_violation(
            RoleCounts(founder=1, manager=1, member=8)
        )


class TestComplianceStatus:
    def test_at_risk_on_violation(self) -> None:
        status = health_rules.compliance_status(RoleCounts(founder=1, member=4))
        assert status == ComplianceStatus.AT_RISK

    def test_warning_with_two_managers_and_more_than_five_members(self) -> None:
        status = health_rules.compliance_status(RoleCounts(founder=1, manager=1, member=4))
        assert status == ComplianceStatus.WARNING

    def test_healthy_with_two_managers_and_five_members(self) -> None:
        status = health_rules.compliance_status(RoleCounts(founder=1, manager=1, member=3))
        assert status == ComplianceStatus.HEALTHY


class TestParticipation:
    def test_full_when_nothing_resolved(self) -> None:
        assert health_rules.participation_rate(["a", "b"], []) == 100.0

    def test_share_of_current_managers_who_voted(self) -> None:
        rate = health_rules.participation_rate(
            ["a", "b", "c", "d"], [["a", "former"], ["a", "b"]]
        )
        assert rate == 50.0

    def test_score_degrades_per_rule_and_floors_at_zero(self) -> None:
        assert health_rules.rule_compliance_score([], 25) == 100
        assert health_rules.rule_compliance_score([GovernanceRule.MANAGER_COUNT], 25) == 75
        assert health_rules.rule_compliance_score(list(GovernanceRule) * 2, 25) == 0


class TestEvaluateHealth:
    def _evaluate(self, counts: RoleCounts, voters: list[list[str]], managers: list[str]):
        return health_rules.evaluate_health(
            group_id="g1",
            counts=counts,
            manager_ids=managers,
            voter_ids_per_decision=voters,
            pending_decisions=2,
            evaluated_at=NOW,
        )

    def test_healthy_group(self) -> None:
        snapshot = self._evaluate(
            RoleCounts(founder=1, manager=2, member=3), [["f", "m1"]], ["f", "m1", "m2"]
        )

        assert snapshot.status == GovernanceHealthStatus.HEALTHY
        assert snapshot.rule_compliance == 100
        assert snapshot.violated_rules == ()
        assert snapshot.pending_decisions == 2

    def test_low_participation(self) -> None:
        snapshot = self._evaluate(
            RoleCounts(founder=1, manager=2, member=3), [["f"]], ["f", "m1", "m2"]
        )

        assert snapshot.status == GovernanceHealthStatus.LOW_PARTICIPATION
        assert snapshot.violated_rules == (GovernanceRule.PARTICIPATION_FLOOR,)
        assert snapshot.rule_compliance == 100

    def test_centralization_risk_on_violation(self) -> None:
        snapshot = self._evaluate(RoleCounts(founder=1, member=5), [], ["f"])

        assert snapshot.status == GovernanceHealthStatus.CENTRALIZATION_RISK
        assert snapshot.governance_violation
        assert snapshot.compliance_status == ComplianceStatus.AT_RISK
        assert GovernanceRule.MANAGER_COUNT in snapshot.violated_rules

    def test_score_is_monotonic_in_violated_rules(self) -> None:
        one = self._evaluate(RoleCounts(founder=1, member=5), [], ["f"])
        two = self._evaluate(RoleCounts(founder=1, member=5), [["x"]], ["f"])

        assert len(two.violated_rules) > len(one.violated_rules)
        assert two.rule_compliance < one.rule_compliance

    def test_to_dict_uses_display_values(self) -> None:
        data = self._evaluate(RoleCounts(founder=1, member=5), [], ["f"]).to_dict()

        assert data["compliance_status"] == "At Risk"
        assert data["violated_rules"] == ["manager_count"]

    def test_warning_scores_every_violated_rule(self) -> None:
        snapshot = self._evaluate(
            RoleCounts(founder=1, manager=1, member=5), [["x"]], ["f", "m1"]
        )

        assert snapshot.compliance_status == ComplianceStatus.WARNING
        assert snapshot.violated_rules == (
            GovernanceRule.MANAGER_REDUNDANCY,
            GovernanceRule.PARTICIPATION_FLOOR,
        )
        assert snapshot.rule_compliance == 50
