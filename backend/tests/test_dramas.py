from conftest import bearer

AUTH = bearer("bob-token")


async def test_create_and_list_dramas_sorted_by_title(client):
    for title in ("Itaewon Class", "Goblin", "Crash Landing on You"):
        resp = await client.post("/api/dramas", headers=AUTH, json={"title": title})
        assert resp.status_code == 201

    resp = await client.get("/api/dramas", headers=AUTH)
    assert resp.status_code == 200
    assert [d["title"] for d in resp.json()] == ["Crash Landing on You", "Goblin", "Itaewon Class"]


async def test_create_drama_optional_fields(client):
    resp = await client.post(
        "/api/dramas",
        headers=AUTH,
        json={"title": "Goblin", "description": "Guardian", "imageUrl": "https://img.test/goblin.jpg"},
    )
    body = resp.json()
    assert body["description"] == "Guardian"
    assert body["imageUrl"] == "https://img.test/goblin.jpg"

    resp = await client.post("/api/dramas", headers=AUTH, json={"title": "Bare"})
    body = resp.json()
    assert body["description"] == ""
    assert body["imageUrl"] == ""


async def test_create_drama_requires_title(client):
    assert (await client.post("/api/dramas", headers=AUTH, json={})).status_code == 400
    assert (await client.post("/api/dramas", headers=AUTH, json={"title": "  "})).status_code == 400


async def test_dramas_require_session(client):
    assert (await client.get("/api/dramas")).status_code == 401
    assert (await client.post("/api/dramas", json={"title": "Goblin"})).status_code == 401


async def test_unsupported_method_uses_error_shape(client):
    resp = await client.delete("/api/dramas", headers=AUTH)
    assert resp.status_code == 405
    assert resp.json()["error"] == "Method not allowed"


async def test_health(client):
    resp = await client.get("/health")
    assert resp.json() == {"status": "ok", "app": "ReelStory"}
