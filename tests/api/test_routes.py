"""
API tests for the coaching endpoints.

Each test gets a fresh application (and so a fresh repository) built by
the application factory with test settings.
"""

import logging
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from coaching_app.config.settings import Settings
from coaching_app.main import create_app

API_KEY = "test-key"
HEADERS = {"X-API-Key": API_KEY}


def _settings(**overrides) -> Settings:
    values = {"api_keys": API_KEY, "snapshot_path": None, "password_hash_rounds": 4}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app(_settings()))


def _create(client: TestClient, **fields) -> dict:
    response = client.post("/api/v1/clients", json=fields, headers=HEADERS)
    assert response.status_code == 201
    return response.json()["client"]


# ---------------------------------------------------------------------------
# Authentication and Health
# ---------------------------------------------------------------------------

class TestAuthAndHealth:

    def test_missing_api_key_is_forbidden(self, client):
        assert client.get("/api/v1/clients").status_code == 403

    def test_wrong_api_key_is_forbidden(self, client):
        response = client.get("/api/v1/clients", headers={"X-API-Key": "nope"})
        assert response.status_code == 403

    def test_health_needs_no_key(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_readiness(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_app_uses_the_settings_it_was_created_with(self):
        client = TestClient(create_app(_settings(api_keys="only-this-key")))

        allowed = client.get("/api/v1/clients", headers={"X-API-Key": "only-this-key"})
        refused = client.get("/api/v1/clients", headers=HEADERS)

        assert allowed.status_code == 200
        assert refused.status_code == 403

    def test_configured_log_level_is_applied(self):
        root = logging.getLogger()
        previous = root.level
        try:
            create_app(_settings(log_level="debug"))
            assert root.level == logging.DEBUG
        finally:
            root.setLevel(previous)


# ---------------------------------------------------------------------------
# Client CRUD
# ---------------------------------------------------------------------------

class TestClientEndpoints:

    def test_create_returns_defaults_and_warnings(self, client):
        response = client.post("/api/v1/clients", json={"firstName": "John"}, headers=HEADERS)

        body = response.json()
        assert response.status_code == 201
        assert body["client"]["id"] == 1
        assert body["client"]["fitnessProfile"]["fitnessLevel"] == "beginner"
        assert body["client"]["membership"]["type"] == "basic"
        assert body["warnings"] == ["Last name is required", "Email is required"]

    def test_get_and_missing_client(self, client):
        created = _create(client, firstName="John", lastName="Doe", email="john@example.com")

        assert client.get("/api/v1/clients/1", headers=HEADERS).json() == created
        assert client.get("/api/v1/clients/99", headers=HEADERS).status_code == 404

    def test_list_with_filters(self, client):
        _create(client, firstName="A", trainer="Sam")
        _create(client, firstName="B", trainer="Alex", membershipType="elite")

        response = client.get(
            "/api/v1/clients",
            params={"trainer": "Alex", "membershipType": "elite"},
            headers=HEADERS,
        )

        body = response.json()
        assert body["total"] == 1
        assert body["clients"][0]["personalInfo"]["firstName"] == "B"

    def test_patch_merges_membership(self, client):
        created = _create(client, firstName="A", trainer="Sam", membershipType="premium")

        response = client.patch(
            "/api/v1/clients/1",
            json={"membership": {"status": "suspended"}},
            headers=HEADERS,
        )

        membership = response.json()["membership"]
        assert membership["status"] == "suspended"
        assert membership["type"] == "premium"
        assert membership["trainer"] == "Sam"
        assert response.json()["updatedAt"] > created["updatedAt"]

    def test_patch_missing_client(self, client):
        response = client.patch("/api/v1/clients/5", json={"membership": {}}, headers=HEADERS)
        assert response.status_code == 404

    def test_delete_twice(self, client):
        _create(client, firstName="A")

        assert client.delete("/api/v1/clients/1", headers=HEADERS).status_code == 204
        assert client.delete("/api/v1/clients/1", headers=HEADERS).status_code == 404


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

class TestProgressEndpoints:

    def test_add_and_read_progress(self, client):
        _create(client, firstName="A")

        response = client.post(
            "/api/v1/clients/1/progress/measurement",
            json={"weight": "150"},
            headers=HEADERS,
        )
        assert response.status_code == 201
        assert response.json()["weight"] == "150"

        progress = client.get("/api/v1/clients/1/progress", headers=HEADERS).json()
        assert len(progress["measurements"]) == 1
        assert progress["workouts"] == []

        measurements = client.get(
            "/api/v1/clients/1/progress", params={"category": "measurement"}, headers=HEADERS
        ).json()
        assert measurements[0]["weight"] == "150"

    def test_bad_category_is_rejected(self, client):
        _create(client, firstName="A")

        response = client.post("/api/v1/clients/1/progress/bogus", json={}, headers=HEADERS)

        assert response.status_code == 400

    def test_progress_for_missing_client(self, client):
        assert client.post("/api/v1/clients/3/progress/note", json={}, headers=HEADERS).status_code == 404
        assert client.get("/api/v1/clients/3/progress", headers=HEADERS).status_code == 404


# ---------------------------------------------------------------------------
# Dashboards and Snapshots
# ---------------------------------------------------------------------------

class TestReports:

    def test_search(self, client):
        _create(client, firstName="John", lastName="Doe", email="john@example.com")

        found = client.get("/api/v1/clients/search", params={"q": "DOE"}, headers=HEADERS).json()
        none = client.get("/api/v1/clients/search", params={"q": "zz-no-match"}, headers=HEADERS).json()

        assert found["total"] == 1
        assert none["total"] == 0

    def test_expiring(self, client):
        soon = (datetime.now(timezone.utc) + timedelta(days=10)).date().isoformat()
        _create(client, firstName="Soon", endDate=soon)
        _create(client, firstName="Never")

        body = client.get("/api/v1/clients/expiring", headers=HEADERS).json()

        assert [c["personalInfo"]["firstName"] for c in body["clients"]] == ["Soon"]

    def test_expiring_window_defaults_to_configured_days(self):
        client = TestClient(create_app(_settings(expiring_days_default=5)))
        ten_days = (datetime.now(timezone.utc) + timedelta(days=10)).date().isoformat()
        _create(client, firstName="Later", endDate=ten_days)

        default = client.get("/api/v1/clients/expiring", headers=HEADERS).json()
        wider = client.get("/api/v1/clients/expiring", params={"daysAhead": 30}, headers=HEADERS).json()

        assert default["total"] == 0
        assert wider["total"] == 1

    def test_statistics_use_camel_case(self, client):
        _create(client, membershipType="basic")
        _create(client, membershipType="basic")
        _create(client, membershipType="premium")
        client.patch("/api/v1/clients/3", json={"membership": {"status": "suspended"}}, headers=HEADERS)

        stats = client.get("/api/v1/clients/statistics", headers=HEADERS).json()

        assert stats["totalClients"] == 3
        assert stats["activeClients"] == 2
        assert stats["membershipTypes"] == {"basic": 2, "premium": 1, "elite": 0}

    def test_export_then_import(self, client):
        _create(client, firstName="A")
        _create(client, firstName="B")
        snapshot = client.get("/api/v1/clients/export", headers=HEADERS).text

        client.delete("/api/v1/clients/1", headers=HEADERS)
        response = client.post("/api/v1/clients/import", content=snapshot, headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {"imported": 2}
        assert client.get("/api/v1/clients/1", headers=HEADERS).status_code == 200

    def test_invalid_import_is_rejected(self, client):
        _create(client, firstName="A")

        response = client.post("/api/v1/clients/import", content="not valid data", headers=HEADERS)

        assert response.status_code == 400
        assert client.get("/api/v1/clients", headers=HEADERS).json()["total"] == 1


# ---------------------------------------------------------------------------
# Accounts and Plans
# ---------------------------------------------------------------------------

class TestAccountsAndPlans:

    REGISTRATION = {
        "email": "sarah.j@example.com",
        "password": "secret1",
        "firstName": "Sarah",
        "lastName": "Johnson",
    }

    def test_register_then_login(self, client):
        registered = client.post("/api/v1/accounts/register", json=self.REGISTRATION, headers=HEADERS)
        assert registered.status_code == 201

        login = client.post(
            "/api/v1/accounts/login",
            json={"email": "sarah.j@example.com", "password": "secret1"},
            headers=HEADERS,
        )

        assert login.status_code == 200
        assert login.json()["uid"] == registered.json()["uid"]
        assert login.json()["client"]["personalInfo"]["firstName"] == "Sarah"

    def test_register_validation_and_duplicates(self, client):
        invalid = client.post(
            "/api/v1/accounts/register",
            json={**self.REGISTRATION, "lastName": ""},
            headers=HEADERS,
        )
        assert invalid.status_code == 400

        client.post("/api/v1/accounts/register", json=self.REGISTRATION, headers=HEADERS)
        duplicate = client.post("/api/v1/accounts/register", json=self.REGISTRATION, headers=HEADERS)
        assert duplicate.status_code == 409

    def test_bad_login(self, client):
        response = client.post(
            "/api/v1/accounts/login",
            json={"email": "ghost@example.com", "password": "whatever"},
            headers=HEADERS,
        )
        assert response.status_code == 401

    def test_assign_and_list_plans(self, client):
        _create(client, firstName="A")

        created = client.post(
            "/api/v1/clients/1/plans",
            json={"title": "Strength block", "exercises": [{"name": "Squat", "sets": 5}]},
            headers=HEADERS,
        )
        assert created.status_code == 201
        assert created.json()["clientId"] == 1

        plans = client.get("/api/v1/clients/1/plans", headers=HEADERS).json()
        assert [p["title"] for p in plans] == ["Strength block"]

    def test_plan_for_missing_client(self, client):
        response = client.post("/api/v1/clients/9/plans", json={"title": "X"}, headers=HEADERS)
        assert response.status_code == 404

    def test_login_after_import_never_returns_another_client(self, client):
        client.post("/api/v1/accounts/register", json=self.REGISTRATION, headers=HEADERS)
        snapshot = '[{"id": 1, "personalInfo": {"firstName": "Bob", "email": "bob@example.com"}}]'

        imported = client.post("/api/v1/clients/import", content=snapshot, headers=HEADERS)
        login = client.post(
            "/api/v1/accounts/login",
            json={"email": "sarah.j@example.com", "password": "secret1"},
            headers=HEADERS,
        )

        assert imported.status_code == 200
        assert login.status_code == 404

    def test_deleted_client_plans_are_gone(self, client):
        _create(client, firstName="A")
        client.post("/api/v1/clients/1/plans", json={"title": "Strength block"}, headers=HEADERS)

        client.delete("/api/v1/clients/1", headers=HEADERS)

        assert client.get("/api/v1/clients/1/plans", headers=HEADERS).json() == []
