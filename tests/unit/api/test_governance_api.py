"""HTTP tests for the governance API over in-memory stubs."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from civic_consensus.api.main import app
from civic_consensus.bootstrap.governance import set_governance_engine
from tests.helpers import GovernanceHarness


@pytest.fixture
def governed(harness: GovernanceHarness) -> GovernanceHarness:
    harness.seed_group("g1", founder="f", managers=["m1", "m2", "m3"], members=["u1", "u2"])
    return harness


@pytest.fixture
def client(governed: GovernanceHarness) -> TestClient:
    set_governance_engine(governed.engine)
    return TestClient(app)


def as_user(user_id: str) -> dict[str, str]:
    return {"X-User-Id": user_id}


def _kick_u1(client: TestClient) -> dict:
    response = client.post(
        "/v1/groups/g1/proposals",
        json={"actionType": "kick", "targetUserId": "u1", "description": "Spam"},
        headers=as_user("f"),
    )
    assert response.status_code == 201
    return response.json()


class TestServiceEndpoints:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_correlation_id_echoed(self, client: TestClient) -> None:
        response = client.get("/health", headers={"X-Correlation-ID": "req-42"})
        assert response.headers["X-Correlation-ID"] == "req-42"

    def test_correlation_id_generated(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.headers["X-Correlation-ID"]

    def test_caller_identity_required(self, client: TestClient) -> None:
        response = client.get("/v1/groups/g1/members")

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "UNAUTHENTICATED"


class TestGroupRoutes:
    def test_create_group(self, client: TestClient) -> None:
        response = client.post("/v1/groups", json={"groupId": "g9"}, headers=as_user("alice"))

        assert response.status_code == 201
        body = response.json()
        assert body["groupId"] == "g9"
        assert body["role"] == "founder"
        assert body["joinedAt"].endswith("Z")

    def test_members(self, client: TestClient) -> None:
        response = client.get("/v1/groups/g1/members", headers=as_user("u1"))

        assert response.status_code == 200
        assert {m["userId"] for m in response.json()} == {"f", "m1", "m2", "m3", "u1", "u2"}

    def test_member_cannot_promote(self, client: TestClient) -> None:
        response = client.put(
            "/v1/groups/g1/members/u2/role", json={"role": "manager"}, headers=as_user("u1")
        )

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "NOT_AUTHORIZED"


class TestProposalRoutes:
    def test_create_and_approve(self, client: TestClient) -> None:
        created = _kick_u1(client)
        assert created["status"] == "active"
        assert created["requiredVotes"] == 2
        assert created["approveCount"] == 1

        response = client.post(
            f"/v1/proposals/{created['id']}/votes",
            json={"vote": "approve"},
            headers=as_user("m1"),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "approved"

    def test_founder_immune(self, client: TestClient) -> None:
        response = client.post(
            "/v1/groups/g1/proposals",
            json={"actionType": "kick", "targetUserId": "f"},
            headers=as_user("m1"),
        )

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "INVALID_TARGET"

    def test_double_vote_conflict(self, client: TestClient) -> None:
        created = _kick_u1(client)

        response = client.post(
            f"/v1/proposals/{created['id']}/votes",
            json={"vote": "reject"},
            headers=as_user("f"),
        )

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "ALREADY_VOTED"

    def test_unknown_proposal(self, client: TestClient) -> None:
        response = client.post(
            "/v1/proposals/missing/votes", json={"vote": "approve"}, headers=as_user("f")
        )
        assert response.status_code == 404

    def test_execution_failure_and_retry(
        self, client: TestClient, governed: GovernanceHarness
    ) -> None:
        created = client.post(
            "/v1/groups/g1/proposals",
            json={
                "actionType": "approve_fund",
                "title": "Garden fund",
                "payload": {"title": "Garden", "targetAmount": 500},
            },
            headers=as_user("f"),
        ).json()
        governed.funds.set_failure(True)

        failed = client.post(
            f"/v1/proposals/{created['id']}/votes",
            json={"vote": "approve"},
            headers=as_user("m1"),
        )
        governed.funds.set_failure(False)
        retried = client.post(
            f"/v1/proposals/{created['id']}/retry-execution", headers=as_user("m2")
        )

        assert failed.status_code == 502
        assert failed.json()["detail"]["code"] == "EXECUTION_FAILED"
        assert retried.status_code == 200
        assert retried.json()["status"] == "approved"

    def test_active_view_for_target(self, client: TestClient) -> None:
        _kick_u1(client)

        response = client.get("/v1/groups/g1/proposals/active", headers=as_user("u1"))

        [view] = response.json()
        assert view["isTarget"] is True
        assert view["canVote"] is False
        assert view["myVote"] is None


class TestJoinRequestRoutes:
    def test_request_and_vote(self, client: TestClient) -> None:
        created = client.post(
            "/v1/groups/g1/join-requests", json={"message": "Hi"}, headers=as_user("newcomer")
        )
        assert created.status_code == 201
        request_id = created.json()["id"]
        assert created.json()["status"] == "voting"

        client.post(
            f"/v1/join-requests/{request_id}/votes", json={"vote": "approve"}, headers=as_user("f")
        )
        response = client.post(
            f"/v1/join-requests/{request_id}/votes",
            json={"vote": "approve"},
            headers=as_user("m1"),
        )

        assert response.json()["status"] == "approved"


class TestGovernanceRoutes:
    def test_health_snapshot(self, client: TestClient) -> None:
        response = client.get("/v1/groups/g1/governance/health", headers=as_user("f"))

        assert response.status_code == 200
        body = response.json()
        assert body["managerCount"] == 4
        assert body["memberCount"] == 6
        assert body["governanceViolation"] is False

    def test_audit_log_page(self, client: TestClient) -> None:
        _kick_u1(client)

        response = client.get(
            "/v1/groups/g1/audit-log",
            params={"filter": "proposals", "limit": 10},
            headers=as_user("f"),
        )

        assert response.status_code == 200
        body = response.json()
        assert [e["actionType"] for e in body["entries"]] == ["proposal_created"]
        assert body["nextCursor"] is None
