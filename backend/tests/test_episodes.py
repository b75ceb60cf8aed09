from sqlalchemy import func, select

from reelstory.models import Episode

from conftest import bearer

AUTH = bearer("alice-token")


def _payload(drama_id: str, **overrides) -> dict:
    body = {
        "title": "Episode 1",
        "description": "The first crash",
        "videoUrl": "https://storage.test/videos/ep1.mp4",
        "thumbnailUrl": "https://storage.test/images/ep1.jpg",
        "duration": 95,
        "isPremium": True,
        "dramaId": drama_id,
    }
    body.update(overrides)
    return body


async def _count(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(Episode))


async def test_create_episode(client, make_drama):
    drama = await make_drama()
    resp = await client.post("/api/episodes", headers=AUTH, json=_payload(drama.id))
    assert resp.status_code == 201
    body = resp.json()
    assert body["title"] == "Episode 1"
    assert body["videoUrl"] == "https://storage.test/videos/ep1.mp4"
    assert body["isPremium"] is True
    assert body["duration"] == 95
    assert body["dramaId"] == drama.id
    assert body["id"]
    assert "createdAt" in body


async def test_create_episode_missing_video_url_creates_nothing(client, make_drama, session_factory):
    drama = await make_drama()
    payload = _payload(drama.id)
    del payload["videoUrl"]

    resp = await client.post("/api/episodes", headers=AUTH, json=payload)
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Missing required fields"
    assert "videoUrl" in body["message"]
    assert await _count(session_factory) == 0


async def test_create_episode_blank_title_is_bad_request(client, make_drama):
    drama = await make_drama()
    resp = await client.post("/api/episodes", headers=AUTH, json=_payload(drama.id, title="   "))
    assert resp.status_code == 400


async def test_create_episode_defaults(client, make_drama):
    drama = await make_drama()
    payload = _payload(drama.id)
    for optional in ("description", "duration", "isPremium"):
        del payload[optional]
    body = (await client.post("/api/episodes", headers=AUTH, json=payload)).json()
    assert body["description"] == ""
    assert body["duration"] == 0
    assert body["isPremium"] is False


async def test_create_episode_unknown_drama(client, session_factory):
    resp = await client.post("/api/episodes", headers=AUTH, json=_payload("missing-drama"))
    assert resp.status_code == 404
    assert await _count(session_factory) == 0


async def test_create_episode_duplicate_video_url_conflicts(client, make_drama, session_factory):
    drama = await make_drama()
    await client.post("/api/episodes", headers=AUTH, json=_payload(drama.id))
    resp = await client.post("/api/episodes", headers=AUTH, json=_payload(drama.id, title="Copy"))
    assert resp.status_code == 409
    assert await _count(session_factory) == 1


async def test_create_episode_requires_session(client, make_drama):
    drama = await make_drama()
    resp = await client.post("/api/episodes", json=_payload(drama.id))
    assert resp.status_code == 401


async def test_list_episodes_newest_first_with_drama_title(client, make_drama):
    drama = await make_drama("Goblin")
    await client.post("/api/episodes", headers=AUTH, json=_payload(drama.id, title="Old"))
    await client.post(
        "/api/episodes",
        headers=AUTH,
        json=_payload(drama.id, title="New", videoUrl="https://storage.test/videos/ep2.mp4"),
    )

    resp = await client.get("/api/episodes", headers=AUTH)
    assert resp.status_code == 200
    body = resp.json()
    assert [ep["title"] for ep in body] == ["New", "Old"]
    assert body[0]["drama"] == {"title": "Goblin"}


async def test_list_episodes_requires_session(client):
    assert (await client.get("/api/episodes")).status_code == 401


async def test_public_episodes_need_no_session(client, make_drama):
    drama = await make_drama()
    await client.post("/api/episodes", headers=AUTH, json=_payload(drama.id))

    resp = await client.get("/api/public/episodes")
    assert resp.status_code == 200
    [episode] = resp.json()
    assert episode["drama"]["title"] == "Crash Landing on You"


async def test_get_episode_includes_drama_details(client, make_drama):
    drama = await make_drama("Goblin", description="A lonely immortal")
    created = (await client.post("/api/episodes", headers=AUTH, json=_payload(drama.id))).json()

    resp = await client.get(f"/api/episodes/{created['id']}", headers=AUTH)
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == created["id"]
    assert body["drama"] == {"title": "Goblin", "description": "A lonely immortal"}


async def test_get_unknown_episode(client):
    resp = await client.get("/api/episodes/does-not-exist", headers=AUTH)
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not Found", "message": "Episode not found"}
