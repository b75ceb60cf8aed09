import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from reelstory.models import Episode, Favorite, User
from reelstory.services import admin as admin_service
from reelstory.services import favorites as favorites_service
from reelstory.services.favorites import toggle_favorite

from conftest import ALICE, BOB, bearer


@pytest.fixture
def make_episode(session_factory, make_drama):
    async def _make(title: str = "Episode 1", video_url: str | None = None) -> Episode:
        drama = await make_drama()
        async with session_factory() as session:
            episode = Episode(
                title=title,
                video_url=video_url or f"https://storage.test/videos/{title.replace(' ', '-')}.mp4",
                thumbnail_url="https://storage.test/images/thumb.jpg",
                duration=90,
                drama_id=drama.id,
            )
            session.add(episode)
            await session.commit()
            return episode

    return _make


async def _favorites(session_factory, user_id):
    async with session_factory() as session:
        result = await session.execute(select(Favorite).where(Favorite.user_id == user_id))
        return result.scalars().all()


async def test_toggle_twice_adds_then_removes(client, make_episode, session_factory):
    episode = await make_episode()

    resp = await client.post("/api/favorites/toggle", headers=bearer("alice-token"), json={"episodeId": episode.id})
    assert resp.status_code == 200
    assert resp.json() == {"message": "Added to favorites", "isFavorite": True}
    assert len(await _favorites(session_factory, ALICE.id)) == 1

    resp = await client.post("/api/favorites/toggle", headers=bearer("alice-token"), json={"episodeId": episode.id})
    assert resp.json() == {"message": "Removed from favorites", "isFavorite": False}
    assert await _favorites(session_factory, ALICE.id) == []


async def test_toggle_creates_user_row(client, make_episode, session_factory):
    episode = await make_episode()
    await client.post("/api/favorites/toggle", headers=bearer("bob-token"), json={"episodeId": episode.id})

    async with session_factory() as session:
        bob = await session.get(User, BOB.id)
    assert bob is not None
    assert bob.is_admin is False


async def test_favorites_are_per_user(client, make_episode, session_factory):
    episode = await make_episode()
    await client.post("/api/favorites/toggle", headers=bearer("alice-token"), json={"episodeId": episode.id})
    resp = await client.post("/api/favorites/toggle", headers=bearer("bob-token"), json={"episodeId": episode.id})
    assert resp.json()["isFavorite"] is True

    assert len(await _favorites(session_factory, ALICE.id)) == 1
    assert len(await _favorites(session_factory, BOB.id)) == 1


async def test_list_favorites_empty(client):
    resp = await client.get("/api/favorites", headers=bearer("alice-token"))
    assert resp.status_code == 200
    assert resp.json() == []


async def test_list_favorites_returns_episodes_marked_favorite(client, make_episode):
    first = await make_episode("Episode 1")
    second = await make_episode("Episode 2")
    for ep in (first, second):
        await client.post("/api/favorites/toggle", headers=bearer("alice-token"), json={"episodeId": ep.id})

    resp = await client.get("/api/favorites", headers=bearer("alice-token"))
    assert resp.status_code == 200
    body = resp.json()
    assert [ep["id"] for ep in body] == [second.id, first.id]
    assert all(ep["isFavorite"] is True for ep in body)
    assert body[0]["drama"] == {"title": "Crash Landing on You"}
    assert body[0]["videoUrl"] == second.video_url


async def test_favorites_require_session(client, make_episode):
    episode = await make_episode()
    assert (await client.get("/api/favorites")).status_code == 401
    resp = await client.post("/api/favorites/toggle", json={"episodeId": episode.id})
    assert resp.status_code == 401


async def test_toggle_missing_episode_id_is_bad_request(client):
    resp = await client.post("/api/favorites/toggle", headers=bearer("alice-token"), json={})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Missing required fields"


async def test_toggle_unknown_episode_is_not_found(client):
    resp = await client.post("/api/favorites/toggle", headers=bearer("alice-token"), json={"episodeId": "nope"})
    assert resp.status_code == 404


async def test_duplicate_favorite_rejected_by_database(make_episode, session_factory):
    episode = await make_episode()
    async with session_factory() as session:
        await toggle_favorite(session, ALICE, episode.id)

    async with session_factory() as session:
        session.add(Favorite(user_id=ALICE.id, episode_id=episode.id))
        with pytest.raises(IntegrityError):
            await session.commit()


async def test_toggle_tolerates_favorite_inserted_concurrently(monkeypatch, make_episode, session_factory):
    episode = await make_episode()
    async with session_factory() as session:
        session.add(User(id=ALICE.id, email=ALICE.email))
        session.add(Favorite(user_id=ALICE.id, episode_id=episode.id))
        await session.commit()

    # the other request commits between our lookup and our insert
    async def _not_found_yet(db, user_id, episode_id):
        return None

    monkeypatch.setattr(favorites_service, "_find_favorite", _not_found_yet)

    async with session_factory() as session:
        assert await toggle_favorite(session, ALICE, episode.id) is True

    assert len(await _favorites(session_factory, ALICE.id)) == 1


async def test_toggle_tolerates_user_created_concurrently(monkeypatch, make_episode, session_factory):
    episode = await make_episode()
    async with session_factory() as session:
        session.add(User(id=BOB.id, email=BOB.email))
        await session.commit()

    real_find_user = admin_service._find_user
    calls = []

    async def _missing_on_first_lookup(db, user_id):
        calls.append(user_id)
        if len(calls) == 1:
            return None
        return await real_find_user(db, user_id)

    monkeypatch.setattr(admin_service, "_find_user", _missing_on_first_lookup)

    async with session_factory() as session:
        assert await toggle_favorite(session, BOB, episode.id) is True

    assert len(calls) == 2
    assert len(await _favorites(session_factory, BOB.id)) == 1
    async with session_factory() as session:
        users = (await session.execute(select(User).where(User.id == BOB.id))).scalars().all()
    assert len(users) == 1
