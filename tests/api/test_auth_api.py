"""
Tests for the login endpoint.
"""

import pytest

from cayden_core.config import get_settings


@pytest.fixture
def registered(client):
    client.post("/users", json={
        "email": "auth@test.com",
        "password": "password123",
        "first_name": "Au",
        "last_name": "Th",
    })
    return "auth@test.com"


def login(client, email, password):
    return client.post("/auth/login", json={"email": email, "password": password})


def test_login_success(client, registered):
    response = login(client, registered, "password123")

    assert response.status_code == 200
    assert response.json()["outcome"] == "ALLOWED"


def test_wrong_password_returns_401(client, registered):
    response = login(client, registered, "wrong-password")

    assert response.status_code == 401
    assert response.json()["outcome"] == "REJECTED"


def test_unknown_user_returns_401(client):
    assert login(client, "nobody@test.com", "password123").status_code == 401


def test_lockout_returns_423_with_retry_after(client, registered):
    attempts = get_settings().MAX_LOGIN_ATTEMPTS
    for _ in range(attempts):
        login(client, registered, "wrong-password")

    response = login(client, registered, "password123")

    assert response.status_code == 423
    data = response.json()
    assert data["outcome"] == "LOCKED"
    assert data["locked_until"] is not None
    retry_after = int(response.headers["Retry-After"])
    assert 0 < retry_after <= get_settings().LOCKOUT_MINUTES * 60
    assert data["retry_after_seconds"] == retry_after
