"""
HTTP endpoints, driven through FastAPI's TestClient with the service swapped for a
test instance on a temporary database.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from conftest import STAFF_EMAIL, STAFF_NAME, back, out
from hallpass.api import main
from hallpass.core.errors import MemberNotFound, NoActivePartitionContext, StorageWriteFailure, StoreBusy
from hallpass.core.roster import JsonRosterProvider
from hallpass.core.service import PassLogService


@pytest.fixture
def client(service):
    main.app.dependency_overrides[main.get_service] = lambda: service
    try:
        with TestClient(main.app) as test_client:
            yield test_client
    finally:
        main.app.dependency_overrides.clear()


def post_usage(client, payload, email=STAFF_EMAIL, **headers):
    return client.post("/usage", json=payload, headers={"X-User-Email": email, **headers})


class TestUsageEndpoint:

    def test_out_returns_camel_case_payload(self, client):
        response = post_usage(client, out())

        assert response.status_code == 200
        assert response.json() == {
            "confirmationNeeded": False,
            "countBefore": 0,
            "countAfter": 1,
            "memberName": "Doe, Jane",
            "partitionName": "AM",
            "appended": True,
            "outcome": "recorded",
        }

    def test_back_closes_event(self, client):
        post_usage(client, out())
        response = post_usage(client, back())

        assert response.status_code == 200
        assert response.json()["outcome"] == "closed"

    def test_unknown_member_is_404(self, client):
        response = post_usage(client, out(member_id="9999"))

        assert response.status_code == 404
        assert response.json() == {"error": MemberNotFound.user_message}

    def test_period_context_header_selects_roster_day(self, client):
        response = post_usage(client, out(member_id="2001"), **{"X-Period-Context": "B-Day"})

        assert response.status_code == 200
        assert response.json()["memberName"] == "Park, Ana"

    @pytest.mark.parametrize("payload", [
        {"category": "G", "action": "Out"},
        {"memberId": "1001", "category": "G", "action": "Sideways"},
        {"memberId": "1001", "category": "G", "action": "Out", "extra": 1},
    ])
    def test_malformed_request_is_422(self, client, payload):
        response = post_usage(client, payload)

        assert response.status_code == 422
        assert response.json()["error"].startswith("Invalid request")

    def test_actor_recorded_from_header(self, client, monkeypatch):
        monkeypatch.setenv("DEBUG", "true")
        post_usage(client, out())

        events = client.get("/partitions/AM/events").json()["events"]
        assert events[0]["actorName"] == STAFF_NAME


class TestOperationalEndpoints:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["db_health"] is True

    def test_migrate(self, client, monkeypatch):
        monkeypatch.setenv("DEBUG", "true")
        post_usage(client, out())

        response = client.post("/migrate")

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["report"]["moved"] == 1
        assert client.get("/partitions/AM/events").json()["events"] == []
        assert len(client.get("/archive/events").json()["events"]) == 1

    def test_unknown_partition_is_404(self, client, monkeypatch):
        monkeypatch.setenv("DEBUG", "true")
        assert client.get("/partitions/XX/events").status_code == 404

    def test_listings_require_debug(self, client, monkeypatch):
        monkeypatch.setenv("DEBUG", "false")

        assert client.get("/partitions/AM/events").status_code == 403
        assert client.get("/archive/events").status_code == 403
        assert client.get("/debug").status_code == 403


class TestErrorStatus:

    def test_corrupt_roster_is_409_without_detail(self, db_path, identities, tmp_path):
        roster_path = tmp_path / "roster.json"
        roster_path.write_text("{not json", encoding="utf-8")
        broken = PassLogService(roster=JsonRosterProvider(str(roster_path)), identities=identities,
                                db_path=db_path)
        main.app.dependency_overrides[main.get_service] = lambda: broken
        try:
            with TestClient(main.app) as test_client:
                response = post_usage(test_client, out())
        finally:
            main.app.dependency_overrides.clear()

        assert response.status_code == 409
        assert response.json() == {"error": NoActivePartitionContext.user_message}

    @pytest.mark.parametrize("error, status", [
        (StoreBusy("Archive busy, retry shortly."), 503),
        (NoActivePartitionContext("Roster for B-Day is missing."), 409),
        (StorageWriteFailure("Archive write failed."), 500),
    ])
    def test_status_follows_error_type_not_message(self, client, error, status):
        with patch("hallpass.core.service.migrate", side_effect=error):
            response = client.post("/migrate")

        assert response.status_code == status
        assert response.json() == {"error": error.user_message}

    def test_unexpected_failure_is_500(self, client):
        with patch("hallpass.core.service.append_event", side_effect=RuntimeError("disk on fire")):
            response = post_usage(client, out())

        assert response.status_code == 500
        assert response.json() == {"error": StorageWriteFailure.user_message}
