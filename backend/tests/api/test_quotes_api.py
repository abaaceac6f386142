"""
名言・タグAPI テスト
"""
from __future__ import annotations


async def test_quote_crud(client):
    created = await client.post("/api/quotes", json={"content": "Be here now.", "author": "Ram Dass"})
    assert created.status_code == 201
    quote = created.json()["data"]

    listed = await client.get("/api/quotes", params={"author": "ram"})
    assert [q["id"] for q in listed.json()["data"]] == [quote["id"]]

    updated = await client.put(
        f"/api/quotes/{quote['id']}", json={"content": "Be here, now.", "author": "Ram Dass"}
    )
    assert updated.json()["data"]["content"] == "Be here, now."

    random_quote = await client.get("/api/quotes/random")
    assert random_quote.json()["data"]["id"] == quote["id"]

    assert (await client.delete(f"/api/quotes/{quote['id']}")).status_code == 200
    assert (await client.get(f"/api/quotes/{quote['id']}")).status_code == 404


async def test_random_with_empty_library(client):
    response = await client.get("/api/quotes/random")
    assert response.status_code == 404
    assert response.json()["message"] == "no quotes available"


async def test_quote_validation(client):
    response = await client.post("/api/quotes", json={"content": " ", "author": "A"})
    assert response.status_code == 400


async def test_tags_and_quote_tags(client):
    quote = (await client.post("/api/quotes", json={"content": "Rest.", "author": "A"})).json()["data"]
    tag = (await client.post("/api/tags", json={"name": "calm"})).json()["data"]

    duplicate = await client.post("/api/tags", json={"name": "calm"})
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "BAD_REQUEST"

    attached = await client.post(f"/api/quotes/{quote['id']}/tags", json={"tag_id": tag["id"]})
    assert attached.status_code == 200
    tags = await client.get(f"/api/quotes/{quote['id']}/tags")
    assert [t["name"] for t in tags.json()["data"]] == ["calm"]

    removed = await client.request(
        "DELETE", f"/api/quotes/{quote['id']}/tags", json={"tag_id": tag["id"]}
    )
    assert removed.status_code == 200
    assert (await client.get(f"/api/quotes/{quote['id']}/tags")).json()["data"] == []

    renamed = await client.put(f"/api/tags/{tag['id']}", json={"name": "peace"})
    assert renamed.json()["data"]["name"] == "peace"
    assert (await client.delete(f"/api/tags/{tag['id']}")).status_code == 200
    assert (await client.get("/api/tags")).json()["data"] == []
