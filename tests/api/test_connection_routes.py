"""
API tests for user lookup and coach/athlete connections.
"""

import pytest


@pytest.fixture
def coach(register):
    return register("coach@example.com", role="coach", first_name="Carla", last_name="Diaz")


@pytest.fixture
def athlete(register):
    return register("ana@example.com", role="athlete", first_name="Ana", last_name="Lopez")


class TestLookup:

    def test_finds_user_case_insensitively(self, client, coach, athlete):
        response = client.get(
            f"/api/v1/users/lookup?code={coach['user_code'].lower()}", headers=athlete["headers"],
        )

        assert response.status_code == 200
        assert response.json()["user"]["first_name"] == "Carla"
        assert response.json()["user"]["role"] == "coach"

    def test_missing_code(self, client, athlete):
        response = client.get("/api/v1/users/lookup", headers=athlete["headers"])
        assert response.status_code == 400

    def test_malformed_code(self, client, athlete):
        response = client.get("/api/v1/users/lookup?code=hello", headers=athlete["headers"])
        assert response.status_code == 400

    def test_unknown_code(self, client, athlete):
        # Only one profile exists and it is an athlete
        response = client.get("/api/v1/users/lookup?code=COA-2222", headers=athlete["headers"])
        assert response.status_code == 404
        assert response.json()["detail"] == "User not found with this code"

    def test_own_code(self, client, athlete):
        response = client.get(f"/api/v1/users/lookup?code={athlete['user_code']}", headers=athlete["headers"])
        assert response.status_code == 400
        assert response.json()["detail"] == "This is your own code"


class TestConnections:

    def request_from_athlete(self, client, athlete, coach):
        return client.post(
            "/api/v1/connections",
            json={"userCode": coach["user_code"], "message": "Hi coach"},
            headers=athlete["headers"],
        )

    def test_request_then_approve(self, client, coach, athlete):
        created = self.request_from_athlete(client, athlete, coach)
        assert created.status_code == 201
        connection = created.json()["connection"]
        assert connection["status"] == "pending"
        assert connection["coach"]["id"] == coach["id"]
        assert connection["athlete"]["id"] == athlete["id"]

        response = client.post(
            f"/api/v1/connections/{connection['id']}/respond",
            json={"action": "approve"},
            headers=coach["headers"],
        )

        assert response.status_code == 200
        assert response.json()["connection"]["status"] == "active"
        assert response.json()["message"] == "You are now connected with Ana Lopez!"

    def test_duplicate_request_conflicts(self, client, coach, athlete):
        self.request_from_athlete(client, athlete, coach)
        response = self.request_from_athlete(client, athlete, coach)
        assert response.status_code == 409

    def test_same_role_cannot_connect(self, client, register, athlete):
        other = register("ben@example.com", role="athlete")
        response = client.post(
            "/api/v1/connections", json={"userCode": other["user_code"]}, headers=athlete["headers"],
        )
        assert response.status_code == 400

    def test_initiator_cannot_approve(self, client, coach, athlete):
        connection_id = self.request_from_athlete(client, athlete, coach).json()["connection"]["id"]

        response = client.post(
            f"/api/v1/connections/{connection_id}/respond",
            json={"action": "approve"},
            headers=athlete["headers"],
        )

        assert response.status_code == 403

    def test_answered_request_cannot_be_answered_again(self, client, coach, athlete):
        connection_id = self.request_from_athlete(client, athlete, coach).json()["connection"]["id"]
        url = f"/api/v1/connections/{connection_id}/respond"
        client.post(url, json={"action": "reject"}, headers=coach["headers"])

        response = client.post(url, json={"action": "approve"}, headers=coach["headers"])

        assert response.status_code == 400

    def test_outsider_sees_not_found(self, client, register, coach, athlete):
        outsider = register("eve@example.com", role="coach")
        connection_id = self.request_from_athlete(client, athlete, coach).json()["connection"]["id"]

        response = client.post(
            f"/api/v1/connections/{connection_id}/respond",
            json={"action": "approve"},
            headers=outsider["headers"],
        )

        assert response.status_code == 404

    def test_list_filters_by_status(self, client, coach, athlete):
        self.request_from_athlete(client, athlete, coach)

        pending = client.get("/api/v1/connections?status=pending", headers=coach["headers"])
        active = client.get("/api/v1/connections?status=active", headers=coach["headers"])
        as_athlete = client.get("/api/v1/connections?role=athlete", headers=coach["headers"])

        assert len(pending.json()["connections"]) == 1
        assert pending.json()["connections"][0]["athlete"]["first_name"] == "Ana"
        assert active.json()["connections"] == []
        assert as_athlete.json()["connections"] == []
