"""
認証API テスト（httpx.AsyncClient + ASGITransport）
"""
from __future__ import annotations

from urllib.parse import parse_qs, urlparse

from tests.conftest import auth_headers, register_and_login


async def test_register_then_conflict(client):
    body = {"email": "a@x.io", "username": "alice", "password": "Pass1word"}
    response = await client.post("/api/auth/register", json=body)
    assert response.status_code == 201
    payload = response.json()
    assert payload["code"] == "SUCCESS"
    assert payload["message"] == "User registered successfully"
    assert payload["data"]["email"] == "a@x.io"
    assert payload["data"]["auth_provider"] == "local"
    assert payload["data"]["created_at"].endswith("Z")
    assert "password_hash" not in payload["data"]

    again = await client.post("/api/auth/register", json=body)
    assert again.status_code == 409
    assert again.json() == {"code": "BAD_REQUEST", "message": "email already registered", "data": None}


async def test_register_weak_password(client):
    response = await client.post(
        "/api/auth/register",
        json={"email": "a@x.io", "username": "alice", "password": "password"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "BAD_REQUEST"


async def test_register_missing_field(client):
    response = await client.post("/api/auth/register", json={"email": "a@x.io"})
    assert response.status_code == 400
    assert response.json()["message"].startswith("invalid request:")


async def test_login(client, token_service):
    data = await register_and_login(client)
    assert data["user"]["username"] == "alice"
    assert token_service.validate_access(data["access_token"]).email == "a@x.io"
    assert token_service.validate_refresh(data["refresh_token"]).email == "a@x.io"


async def test_login_wrong_password(client):
    await register_and_login(client)
    response = await client.post("/api/auth/login", json={"email": "a@x.io", "password": "wrong"})
    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"
    assert response.json()["message"] == "invalid email or password"


async def test_refresh(client, token_service):
    data = await register_and_login(client)
    response = await client.post(
        "/api/auth/refresh",
        json={"access_token": data["access_token"], "refresh_token": data["refresh_token"]},
    )
    assert response.status_code == 200
    pair = response.json()["data"]
    assert token_service.validate_access(pair["access_token"]).user_id == data["user"]["id"]
    assert token_service.validate_refresh(pair["refresh_token"]).user_id == data["user"]["id"]


async def test_refresh_rejects_access_token(client):
    data = await register_and_login(client)
    response = await client.post("/api/auth/refresh", json={"refresh_token": data["access_token"]})
    assert response.status_code == 401
    assert response.json()["message"] == "invalid refresh token"


async def test_google_url(client):
    response = await client.get("/api/auth/google/url", params={"state": "abc"})
    assert response.status_code == 200
    url = response.json()["data"]["url"]
    assert parse_qs(urlparse(url).query)["state"] == ["abc"]


async def test_google_login_creates_user(client):
    response = await client.post("/api/auth/google/login", json={"code": "auth-code"})
    assert response.status_code == 200
    payload = response.json()
    assert payload["message"] == "Google login successful"
    assert payload["data"]["user"]["username"] == "gracehopper"

    me = await client.get("/api/user/me", headers=auth_headers(payload["data"]["access_token"]))
    assert me.json()["data"]["auth_provider"] == "google"
    assert me.json()["data"]["email_verified"] is True


async def test_unknown_provider(client):
    response = await client.get("/api/auth/github/url")
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"
