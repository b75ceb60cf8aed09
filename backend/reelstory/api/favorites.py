import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from reelstory.api.deps import get_current_user
from reelstory.database import get_db
from reelstory.schemas.favorite import FavoriteEpisodeResponse, FavoriteToggleRequest, FavoriteToggleResponse
from reelstory.services.favorites import list_favorites, toggle_favorite
from reelstory.services.supabase import AuthUser

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/favorites", tags=["favorites"])


@router.get("", response_model=list[FavoriteEpisodeResponse])
async def get_favorites(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    episodes = await list_favorites(db, user.id)
    logger.info(f"Found {len(episodes)} favorites for user {user.id}")
    return episodes


@router.post("/toggle", response_model=FavoriteToggleResponse)
async def toggle(
    data: FavoriteToggleRequest,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    is_favorite = await toggle_favorite(db, user, data.episode_id)
    return FavoriteToggleResponse(
        message="Added to favorites" if is_favorite else "Removed from favorites",
        is_favorite=is_favorite,
    )
