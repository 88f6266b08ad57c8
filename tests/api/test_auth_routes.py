"""
API tests for authentication endpoints.
"""

from urllib.parse import urlparse


class TestSignup:

    def test_duplicate_email_is_rejected(self, client):
        body = {"email": "ana@example.com", "password": "secret123", "firstName": "Ana", "role": "athlete"}
        assert client.post("/api/v1/auth/signup", json=body).status_code == 200

        response = client.post("/api/v1/auth/signup", json=body)

        assert response.status_code == 400
        assert response.json()["detail"] == (
            "An account with this email already exists. Please sign in instead."
        )

    def test_missing_role_is_a_validation_error(self, client):
        response = client.post("/api/v1/auth/signup", json={
            "email": "ana@example.com", "password": "secret123", "firstName": "Ana",
        })
        assert response.status_code == 422

    def test_short_password_is_rejected(self, client):
        response = client.post("/api/v1/auth/signup", json={
            "email": "ana@example.com", "password": "123", "firstName": "Ana", "role": "coach",
        })
        assert response.status_code == 400


class TestCallback:

    def test_creates_profile_from_signup_metadata(self, client, backend):
        signup = client.post("/api/v1/auth/signup", json={
            "email": "coach@example.com", "password": "secret123",
            "firstName": "Carla", "lastName": "Diaz", "role": "coach",
        })
        user_id = signup.json()["user"]["id"]
        code = backend.issue_auth_code(user_id)

        response = client.get(f"/api/v1/auth/callback?code={code}", follow_redirects=False)

        assert response.status_code == 303
        assert urlparse(response.headers["location"]).query == "message=profile_created"
        profile = backend.select("profiles", [])[0]
        assert profile["first_name"] == "Carla"
        assert profile["role"] == "coach"
        assert profile["user_code"].startswith("COA-")

    def test_second_confirmation_reports_already_confirmed(self, client, backend, register):
        user = register("ana@example.com")
        code = backend.issue_auth_code(user["id"])

        response = client.get(f"/api/v1/auth/callback?code={code}", follow_redirects=False)

        assert response.headers["location"].endswith("message=already_confirmed")

    def test_bad_code_redirects_to_error_page(self, client):
        response = client.get("/api/v1/auth/callback?code=nope", follow_redirects=False)
        assert response.headers["location"].endswith("/auth/auth-code-error")

    def test_missing_code_redirects_to_error_page(self, client):
        response = client.get("/api/v1/auth/callback", follow_redirects=False)
        assert response.headers["location"].endswith("/auth/auth-code-error")


class TestLogin:

    def test_returns_role_from_profile(self, client, register):
        register("coach@example.com", role="coach")

        response = client.post("/api/v1/auth/login", json={
            "email": "coach@example.com", "password": "secret123",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["role"] == "coach"
        assert body["access_token"]
        assert "sb-access-token" in response.cookies

    def test_role_defaults_to_athlete_without_profile(self, client):
        client.post("/api/v1/auth/signup", json={
            "email": "new@example.com", "password": "secret123", "firstName": "New", "role": "coach",
        })

        response = client.post("/api/v1/auth/login", json={"email": "new@example.com", "password": "secret123"})

        assert response.json()["user"]["role"] == "athlete"

    def test_wrong_password(self, client, register):
        register("ana@example.com")
        response = client.post("/api/v1/auth/login", json={"email": "ana@example.com", "password": "nope"})
        assert response.status_code == 401

    def test_cookie_authenticates_later_requests(self, client, register):
        register("ana@example.com")
        client.post("/api/v1/auth/login", json={"email": "ana@example.com", "password": "secret123"})

        response = client.post("/api/v1/rewards/award-missing-stars")

        assert response.status_code == 200


class TestPasswords:

    def test_reset_links_to_update_page(self, client, backend):
        response = client.post("/api/v1/auth/reset-password", json={"email": "ana@example.com"})

        assert response.status_code == 200
        assert backend.sent_emails[-1]["redirect_to"] == "http://localhost:3000/auth/update-password"

    def test_update_rejects_short_password(self, client, register):
        user = register("ana@example.com")
        response = client.post("/api/v1/auth/update-password", json={"password": "12345"}, headers=user["headers"])
        assert response.status_code == 400
        assert response.json()["detail"] == "Password must be at least 6 characters long"

    def test_update_requires_token(self, client):
        response = client.post("/api/v1/auth/update-password", json={"password": "longenough"})
        assert response.status_code == 401

    def test_update_then_login_with_new_password(self, client, register):
        user = register("ana@example.com")

        client.post("/api/v1/auth/update-password", json={"password": "newsecret"}, headers=user["headers"])

        login = client.post("/api/v1/auth/login", json={"email": "ana@example.com", "password": "newsecret"})
        assert login.status_code == 200


class TestLogout:

    def test_token_is_revoked(self, client, register):
        user = register("ana@example.com")

        assert client.post("/api/v1/auth/logout", headers=user["headers"]).status_code == 200

        response = client.get("/api/v1/users/lookup?code=ATH-ABCD", headers=user["headers"])
        assert response.status_code == 401
