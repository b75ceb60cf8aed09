import logging
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reelstory.api.deps import get_current_user
from reelstory.database import get_db
from reelstory.models import Drama
from reelstory.schemas.drama import DramaCreate, DramaResponse
from reelstory.services.supabase import AuthUser

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/dramas", tags=["dramas"])


@router.get("", response_model=list[DramaResponse])
async def list_dramas(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Drama).order_by(Drama.title))
    dramas = result.scalars().all()
    logger.info(f"Found {len(dramas)} dramas for user {user.id}")
    return dramas


@router.post("", response_model=DramaResponse, status_code=201)
async def create_drama(
    data: DramaCreate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    drama = Drama(
        title=data.title,
        description=data.description or "",
        image_url=data.image_url or "",
    )
    db.add(drama)
    await db.commit()
    await db.refresh(drama)
    logger.info(f"Drama {drama.id} created by user {user.id}")
    return drama
