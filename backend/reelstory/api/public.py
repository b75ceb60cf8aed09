from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from reelstory.api.episodes import list_episodes_with_drama
from reelstory.database import get_db
from reelstory.schemas.episode import EpisodeListItem

router = APIRouter(prefix="/api/public", tags=["public"])


@router.get("/episodes", response_model=list[EpisodeListItem])
async def list_public_episodes(db: AsyncSession = Depends(get_db)):
    return await list_episodes_with_drama(db)
