# tests/api/v1/test_auth.py

from fastapi.testclient import TestClient

from tests.utils.auth import (
    get_expired_authentication_headers,
    get_user_authentication_headers,
)
from tests.utils.user import DEFAULT_PASSWORD, create_random_organizer, create_random_user


def test_register_returns_user_and_token(client: TestClient):
    response = client.post(
        "/api/v1/auth/register",
        json={
            "name": "  Ada Lovelace ",
            "email": "Ada@Example.com",
            "password": "secret123",
            "role": "organizer",
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert data["accessToken"]
    assert data["tokenType"] == "bearer"
    assert data["user"]["name"] == "Ada Lovelace"
    assert data["user"]["email"] == "ada@example.com"
    assert data["user"]["role"] == "organizer"
    assert "password" not in data["user"]
    assert "hashedPassword" not in data["user"]


def test_register_duplicate_email_conflict(client: TestClient, db):
    user = create_random_user(db)

    response = client.post(
        "/api/v1/auth/register",
        json={"name": "Someone Else", "email": user.email, "password": "secret123"},
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "EMAIL_TAKEN"


def test_register_rejects_short_password(client: TestClient):
    response = client.post(
        "/api/v1/auth/register",
        json={"name": "Short Pass", "email": "short@example.com", "password": "123"},
    )

    assert response.status_code == 400
    fields = [e["field"] for e in response.json()["error"]["validationErrors"]]
    assert "password" in fields


def test_register_rejects_password_over_72_bytes(client: TestClient):
    response = client.post(
        "/api/v1/auth/register",
        json={"name": "Long Pass", "email": "long@example.com", "password": "x" * 80},
    )

    assert response.status_code == 400
    fields = [e["field"] for e in response.json()["error"]["validationErrors"]]
    assert "password" in fields


def test_login_success(client: TestClient, db):
    user = create_random_user(db)

    response = client.post(
        "/api/v1/auth/login",
        json={"email": user.email.upper(), "password": DEFAULT_PASSWORD},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["user"]["id"] == user.id
    assert data["accessToken"]


def test_login_wrong_password_is_unauthorized(client: TestClient, db):
    user = create_random_user(db)

    response = client.post(
        "/api/v1/auth/login", json={"email": user.email, "password": "not-it"}
    )

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_login_with_overlong_password_is_unauthorized(client: TestClient, db):
    user = create_random_user(db)

    response = client.post(
        "/api/v1/auth/login", json={"email": user.email, "password": "y" * 80}
    )

    assert response.status_code == 401


def test_login_unknown_email_does_not_create_account(client: TestClient):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@example.com", "password": "whatever", "role": "user"},
    )
    assert response.status_code == 401

    # Still unknown afterwards
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@example.com", "password": "whatever"},
    )
    assert response.status_code == 401


def test_login_role_mismatch_is_forbidden_and_role_unchanged(client: TestClient, db):
    user = create_random_user(db)

    response = client.post(
        "/api/v1/auth/login",
        json={"email": user.email, "password": DEFAULT_PASSWORD, "role": "organizer"},
    )
    assert response.status_code == 403

    db.refresh(user)
    assert user.role == "user"


def test_me_returns_current_user(client: TestClient, db):
    organizer = create_random_organizer(db)

    response = client.get(
        "/api/v1/auth/me", headers=get_user_authentication_headers(organizer)
    )

    assert response.status_code == 200
    assert response.json()["email"] == organizer.email
    assert response.json()["role"] == "organizer"


def test_me_without_token_is_unauthorized(client: TestClient):
    response = client.get("/api/v1/auth/me")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_me_with_expired_token_is_unauthorized(client: TestClient, db):
    user = create_random_user(db)

    response = client.get(
        "/api/v1/auth/me", headers=get_expired_authentication_headers(user)
    )

    assert response.status_code == 401


def test_me_with_garbage_token_is_unauthorized(client: TestClient):
    response = client.get(
        "/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid or expired token"
