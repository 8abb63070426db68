"""
Auth API tests - sign up, sign in, refresh, sign out and the bearer dependency.
"""

import pytest
from httpx import AsyncClient

from tests.conftest import PASSWORD, bearer


@pytest.mark.asyncio
async def test_sign_up_creates_account_and_profile(client: AsyncClient):
    response = await client.post(
        "/api/v1/auth/sign-up",
        json={"email": "Dana@Example.com", "password": "s3cret-pass", "username": "dana"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["email"] == "dana@example.com"

    headers = {"Authorization": f"Bearer {data['access_token']}"}
    profile = await client.get("/api/v1/profiles/me", headers=headers)
    assert profile.status_code == 200
    body = profile.json()
    assert body["id"] == data["user_id"]
    assert body["username"] == "dana"
    assert body["reputation_score"] == 0
    assert body["trades_completed"] == 0


@pytest.mark.asyncio
async def test_sign_up_duplicate_username_is_auth_error(client: AsyncClient, alice):
    response = await client.post(
        "/api/v1/auth/sign-up",
        json={"email": "other@example.com", "password": "s3cret-pass", "username": "alice"},
    )
    assert response.status_code == 401
    assert response.json()["code"] == "auth_error"
    assert response.json()["detail"] == "Username is already taken"


@pytest.mark.asyncio
async def test_sign_up_duplicate_email_is_auth_error(client: AsyncClient, alice):
    response = await client.post(
        "/api/v1/auth/sign-up",
        json={"email": "alice@example.com", "password": "s3cret-pass", "username": "alice2"},
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Email already registered"


@pytest.mark.asyncio
async def test_sign_up_rejects_bad_username(client: AsyncClient):
    response = await client.post(
        "/api/v1/auth/sign-up",
        json={"email": "x@example.com", "password": "s3cret-pass", "username": "no spaces!"},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_sign_in(client: AsyncClient, alice):
    response = await client.post(
        "/api/v1/auth/sign-in", json={"email": "alice@example.com", "password": PASSWORD}
    )
    assert response.status_code == 200
    assert response.json()["user_id"] == alice.user_id


@pytest.mark.asyncio
async def test_sign_in_wrong_password(client: AsyncClient, alice):
    response = await client.post(
        "/api/v1/auth/sign-in", json={"email": "alice@example.com", "password": "nope"}
    )
    assert response.status_code == 401
    body = response.json()
    assert body["detail"] == "Invalid email or password"
    assert body["retryable"] is False


@pytest.mark.asyncio
async def test_sign_in_provisions_missing_profile(client: AsyncClient, session):
    """An account without a profile gets a default one on sign-in."""
    from app.core.security import hash_password
    from app.db.models import Account
    from app.db.repositories.profile_repository import ProfileRepository

    account = Account(email="legacy@example.com", hashed_password=hash_password(PASSWORD))
    session.add(account)
    await session.commit()
    account_id = account.id

    response = await client.post(
        "/api/v1/auth/sign-in", json={"email": "legacy@example.com", "password": PASSWORD}
    )
    assert response.status_code == 200

    profile = await ProfileRepository(session).get_by_id(account_id)
    assert profile is not None
    assert profile.username == "user_" + account_id.replace("-", "")[:8]


@pytest.mark.asyncio
async def test_refresh_and_session(client: AsyncClient, alice):
    refreshed = await client.post("/api/v1/auth/refresh", headers=bearer(alice))
    assert refreshed.status_code == 200
    assert refreshed.json()["user_id"] == alice.user_id

    current = await client.get("/api/v1/auth/session", headers=bearer(alice))
    assert current.status_code == 200
    assert current.json()["email"] == "alice@example.com"


@pytest.mark.asyncio
async def test_sign_out(client: AsyncClient, alice, session_store):
    await client.post("/api/v1/auth/refresh", headers=bearer(alice))
    assert session_store.current(alice.user_id) is not None

    response = await client.post("/api/v1/auth/sign-out", headers=bearer(alice))
    assert response.status_code == 204
    assert session_store.current(alice.user_id) is None


@pytest.mark.asyncio
async def test_protected_route_without_token(client: AsyncClient):
    response = await client.get("/api/v1/profiles/me")
    assert response.status_code == 401
    assert response.json()["code"] == "auth_error"


@pytest.mark.asyncio
async def test_protected_route_with_forged_token(client: AsyncClient):
    response = await client.get("/api/v1/profiles/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"
