"""Favorite toggling and listing."""
from __future__ import annotations
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from reelstory.errors import NotFoundError
from reelstory.models import Episode, Favorite
from reelstory.services.admin import get_or_create_user
from reelstory.services.supabase import AuthUser

logger = logging.getLogger(__name__)


async def _find_favorite(db: AsyncSession, user_id: str, episode_id: str) -> Favorite | None:
    result = await db.execute(
        select(Favorite).where(
            Favorite.user_id == user_id,
            Favorite.episode_id == episode_id,
        )
    )
    return result.scalars().first()


async def toggle_favorite(db: AsyncSession, auth_user: AuthUser, episode_id: str) -> bool:
    """Flip the (user, episode) favorite. Returns the new state."""
    if await db.scalar(select(Episode.id).where(Episode.id == episode_id)) is None:
        raise NotFoundError("Episode not found")

    await get_or_create_user(db, auth_user)

    existing = await _find_favorite(db, auth_user.id, episode_id)
    if existing:
        logger.info(f"Removing favorite for episode {episode_id} and user {auth_user.id}")
        # by id; a concurrent toggle may already have removed it
        await db.execute(delete(Favorite).where(Favorite.id == existing.id))
        await db.commit()
        return False

    logger.info(f"Adding favorite for episode {episode_id} and user {auth_user.id}")
    try:
        async with db.begin_nested():
            db.add(Favorite(user_id=auth_user.id, episode_id=episode_id))
    except IntegrityError:
        # uq_favorites_user_episode: a concurrent toggle inserted it first
        logger.info(f"Favorite for episode {episode_id} already added by a concurrent request")
    await db.commit()
    return True


async def list_favorites(db: AsyncSession, user_id: str) -> list[Episode]:
    result = await db.execute(
        select(Favorite)
        .where(Favorite.user_id == user_id)
        .options(selectinload(Favorite.episode).selectinload(Episode.drama))
        .order_by(Favorite.created_at.desc())
    )
    return [fav.episode for fav in result.scalars().all()]
