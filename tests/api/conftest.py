"""
Fixtures for API tests.

Every test gets a fresh application in mock mode: the in-memory Supabase
client and the fixed-answer geolocation client stand in for the real
services, so the full request path runs without network access.
"""

import os

import pytest
from fastapi.testclient import TestClient

os.environ["SUPABASE_MOCK_MODE"] = "true"
os.environ["GEOLOCATION_MOCK_MODE"] = "true"
os.environ["CRON_SECRET"] = "test-cron-secret"

from src.api.dependencies import get_backend_client, reset_mock_clients  # noqa: E402
from src.config.settings import get_backend_config, get_settings  # noqa: E402
from src.main import create_app  # noqa: E402


@pytest.fixture
def client():
    get_settings.cache_clear()
    get_backend_config.cache_clear()
    reset_mock_clients()

    with TestClient(create_app()) as test_client:
        yield test_client

    reset_mock_clients()


@pytest.fixture
def backend(client):
    """The shared in-memory backend the app is using."""
    return get_backend_client(get_settings(), get_backend_config())


@pytest.fixture
def register(client, backend):
    """
    Create a confirmed user with a profile and return their credentials.

    Goes through signup, the confirmation callback, and login, the same
    path a real user takes.
    """
    def _register(email, role="athlete", first_name="Test", last_name="User"):
        response = client.post("/api/v1/auth/signup", json={
            "email": email,
            "password": "secret123",
            "firstName": first_name,
            "lastName": last_name,
            "role": role,
        })
        assert response.status_code == 200, response.text
        user_id = response.json()["user"]["id"]

        code = backend.issue_auth_code(user_id)
        callback = client.get(f"/api/v1/auth/callback?code={code}", follow_redirects=False)
        assert callback.status_code == 303

        login = client.post("/api/v1/auth/login", json={"email": email, "password": "secret123"})
        assert login.status_code == 200, login.text
        # Tests pass tokens explicitly rather than relying on the cookie
        client.cookies.clear()

        token = login.json()["access_token"]
        profiles = backend.select("profiles", [])
        user_code = next(p["user_code"] for p in profiles if p["id"] == user_id)
        return {
            "id": user_id,
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
            "user_code": user_code,
        }

    return _register
