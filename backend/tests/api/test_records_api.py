"""
気分記録API テスト
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from tests.conftest import auth_headers, register_and_login


async def test_create_requires_token(client):
    response = await client.post("/api/records", json={"happy_level": 6, "energy_level": 4})
    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


async def test_owner_and_other_user(client):
    alice = await register_and_login(client)
    bob = await register_and_login(client, email="b@x.io", username="bob")

    created = await client.post(
        "/api/records",
        json={"happy_level": 6, "energy_level": 4, "status": "private"},
        headers=auth_headers(alice["access_token"]),
    )
    assert created.status_code == 201
    record = created.json()["data"]
    assert record["user_id"] == alice["user"]["id"]
    assert record["created_at"].endswith("Z")

    mine = await client.get(f"/api/records/{record['id']}", headers=auth_headers(alice["access_token"]))
    assert mine.status_code == 200

    theirs = await client.get(f"/api/records/{record['id']}", headers=auth_headers(bob["access_token"]))
    assert theirs.status_code == 403
    assert theirs.json() == {
        "code": "FORBIDDEN",
        "message": "unauthorized: user does not own this record",
        "data": None,
    }


async def test_update_and_delete(client):
    alice = await register_and_login(client)
    headers = auth_headers(alice["access_token"])
    record = (
        await client.post("/api/records", json={"happy_level": 3, "energy_level": 3}, headers=headers)
    ).json()["data"]

    updated = await client.put(
        f"/api/records/{record['id']}",
        json={"happy_level": 8, "energy_level": 7, "notes": "walked outside", "status": "public"},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["happy_level"] == 8
    assert updated.json()["data"]["created_at"] == record["created_at"]

    deleted = await client.delete(f"/api/records/{record['id']}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["data"] is None

    gone = await client.get(f"/api/records/{record['id']}", headers=headers)
    assert gone.status_code == 404


async def test_invalid_levels(client):
    alice = await register_and_login(client)
    response = await client.post(
        "/api/records",
        json={"happy_level": 11, "energy_level": 4},
        headers=auth_headers(alice["access_token"]),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "BAD_REQUEST"


async def test_unknown_and_malformed_ids(client):
    alice = await register_and_login(client)
    headers = auth_headers(alice["access_token"])
    assert (await client.get(f"/api/records/{uuid.uuid4()}", headers=headers)).status_code == 404
    assert (await client.get("/api/records/not-a-uuid", headers=headers)).status_code == 400


async def test_list_window(client, make_record):
    alice = await register_and_login(client)
    user_id = uuid.UUID(alice["user"]["id"])
    for day in (1, 2, 3):
        await make_record(user_id, created_at=datetime(2025, 8, day, 12, tzinfo=timezone.utc))

    response = await client.get(
        "/api/records",
        params={"started_at": "2025-08-02T12:00:00.000Z", "ended_at": "2025-08-03T12:00:00Z"},
        headers=auth_headers(alice["access_token"]),
    )
    assert response.status_code == 200
    days = [r["created_at"][:10] for r in response.json()["data"]]
    assert days == ["2025-08-03", "2025-08-02"]


async def test_list_bad_date(client):
    alice = await register_and_login(client)
    response = await client.get(
        "/api/records",
        params={"started_at": "yesterday"},
        headers=auth_headers(alice["access_token"]),
    )
    assert response.status_code == 400
    assert response.json()["message"].startswith("invalid start date format")


async def test_heatmap(client, make_record):
    alice = await register_and_login(client)
    user_id = uuid.UUID(alice["user"]["id"])
    for hour, (happy, energy) in enumerate([(6, 4), (8, 6), (7, 5)], start=8):
        await make_record(user_id, happy, energy, created_at=datetime(2024, 5, 1, hour, tzinfo=timezone.utc))

    response = await client.get(
        "/api/records/heatmap",
        params={"started_at": "2024-05-01T00:00:00Z", "ended_at": "2024-05-31T23:59:59Z"},
        headers=auth_headers(alice["access_token"]),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["data"] == {"2024-05-01": {"happy_level": 7, "energy_level": 5, "count": 3}}
    assert data["total_records"] == 3
    assert data["date_range"] == {
        "started_at": "2024-05-01T00:00:00.000Z",
        "ended_at": "2024-05-31T23:59:59.000Z",
    }


async def test_streak_empty(client):
    alice = await register_and_login(client)
    response = await client.get("/api/records/streak", headers=auth_headers(alice["access_token"]))
    assert response.status_code == 200
    assert response.json()["data"] == {"streak": 0, "last_entry_date": None}


async def test_streak_counts_today(client):
    alice = await register_and_login(client)
    headers = auth_headers(alice["access_token"])
    await client.post("/api/records", json={"happy_level": 5, "energy_level": 5}, headers=headers)

    response = await client.get("/api/records/streak", headers=headers)
    data = response.json()["data"]
    assert data["streak"] == 1
    assert data["last_entry_date"] == datetime.now(timezone.utc).strftime("%Y-%m-%d")
