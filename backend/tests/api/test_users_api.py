"""
ユーザーAPI テスト
"""
from __future__ import annotations

from tests.conftest import auth_headers, register_and_login


async def test_me_requires_token(client):
    response = await client.get("/api/user/me")
    assert response.status_code == 401
    assert response.json()["message"] == "authorization header is required"


async def test_me_rejects_refresh_token(client):
    data = await register_and_login(client)
    response = await client.get("/api/user/me", headers=auth_headers(data["refresh_token"]))
    assert response.status_code == 401
    assert response.json()["message"] == "invalid token type"


async def test_update_profile(client):
    data = await register_and_login(client)
    headers = auth_headers(data["access_token"])

    response = await client.put(
        "/api/user/profile", json={"first_name": "Alice", "last_name": "Liddell"}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["data"]["full_name"] == "Alice Liddell"

    bad = await client.put("/api/user/profile", json={"first_name": "A"}, headers=headers)
    assert bad.status_code == 400


async def test_change_password(client):
    data = await register_and_login(client)
    headers = auth_headers(data["access_token"])

    response = await client.put("/api/user/password", json={"new_password": "NewPass1word"}, headers=headers)
    assert response.status_code == 200

    old = await client.post("/api/auth/login", json={"email": "a@x.io", "password": "Pass1word"})
    assert old.status_code == 401
    new = await client.post("/api/auth/login", json={"email": "a@x.io", "password": "NewPass1word"})
    assert new.status_code == 200


async def test_deactivate_blocks_login(client):
    data = await register_and_login(client)
    headers = auth_headers(data["access_token"])

    assert (await client.post("/api/user/deactivate", headers=headers)).status_code == 200
    again = await client.post("/api/user/deactivate", headers=headers)
    assert again.status_code == 400

    login = await client.post("/api/auth/login", json={"email": "a@x.io", "password": "Pass1word"})
    assert login.status_code == 401


async def test_delete_account_frees_email(client):
    data = await register_and_login(client)
    response = await client.delete("/api/user/account", headers=auth_headers(data["access_token"]))
    assert response.status_code == 200

    me = await client.get("/api/user/me", headers=auth_headers(data["access_token"]))
    assert me.status_code == 404

    await register_and_login(client)
