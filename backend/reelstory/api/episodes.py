import logging
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from reelstory.api.deps import get_current_user
from reelstory.database import get_db
from reelstory.errors import ConflictError, NotFoundError
from reelstory.models import Drama, Episode
from reelstory.schemas.episode import EpisodeCreate, EpisodeDetailResponse, EpisodeListItem, EpisodeResponse
from reelstory.services.supabase import AuthUser

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/episodes", tags=["episodes"])


async def list_episodes_with_drama(db: AsyncSession) -> list[Episode]:
    result = await db.execute(
        select(Episode)
        .options(selectinload(Episode.drama))
        .order_by(Episode.created_at.desc())
    )
    return list(result.scalars().all())


@router.get("", response_model=list[EpisodeListItem])
async def list_episodes(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    episodes = await list_episodes_with_drama(db)
    logger.info(f"Found {len(episodes)} episodes for user {user.id}")
    return episodes


@router.post("", response_model=EpisodeResponse, status_code=201)
async def create_episode(
    data: EpisodeCreate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if await db.scalar(select(Drama.id).where(Drama.id == data.drama_id)) is None:
        raise NotFoundError("Drama not found")

    episode = Episode(**data.model_dump())
    db.add(episode)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("An episode with this video URL already exists") from e
    await db.refresh(episode)
    logger.info(f"Episode {episode.id} created by user {user.id}")
    return episode


@router.get("/{episode_id}", response_model=EpisodeDetailResponse)
async def get_episode(
    episode_id: str,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Episode)
        .where(Episode.id == episode_id)
        .options(selectinload(Episode.drama))
    )
    episode = result.scalar_one_or_none()
    if not episode:
        raise NotFoundError("Episode not found")
    return episode
