import logging
from fastapi import APIRouter, Body, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from reelstory.api.deps import get_optional_user, get_storage_backend, require_admin
from reelstory.database import get_db
from reelstory.models import User
from reelstory.schemas.admin import AdminGrantResponse, AdminStatusResponse, SyncRequest, SyncResponse
from reelstory.schemas.episode import EpisodeResponse
from reelstory.services.admin import check_admin, request_admin
from reelstory.services.storage import StorageBackend
from reelstory.services.supabase import AuthUser
from reelstory.services.sync import sync_storage
from reelstory.services.upload import check_upload_size, upload_episode

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/check-admin", response_model=AdminStatusResponse)
async def get_admin_status(
    user: AuthUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    await check_admin(db, user)
    logger.info(f"Admin check successful for user {user.id}")
    return AdminStatusResponse(is_admin=True)


@router.post("/check-admin", response_model=AdminGrantResponse)
async def request_admin_privileges(
    user: AuthUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    granted = await request_admin(db, user)
    return AdminGrantResponse(
        success=True,
        message="Admin privileges granted successfully!",
        is_admin=granted.is_admin,
    )


@router.post("/sync-firebase", response_model=SyncResponse)
async def sync_firebase(
    body: SyncRequest | None = Body(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend),
):
    body = body or SyncRequest()
    logger.info(f"Storage sync requested by admin {admin.id}")
    report = await sync_storage(db, storage, drama_id=body.drama_id, drama_map=body.drama_map)
    return {"success": True, "message": report.message, "results": report.as_dict()}


@router.post("/upload", response_model=EpisodeResponse, status_code=201)
async def upload(
    title: str = Form(...),
    drama_id: str = Form(..., alias="dramaId"),
    description: str = Form(""),
    duration: int = Form(60, ge=0),
    is_premium: bool = Form(False, alias="isPremium"),
    video: UploadFile = File(...),
    thumbnail: UploadFile | None = File(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend),
):
    check_upload_size(video.size, thumbnail.size if thumbnail else None)
    thumbnail_data = await thumbnail.read() if thumbnail else None
    episode = await upload_episode(
        db,
        storage,
        title=title,
        description=description,
        drama_id=drama_id,
        duration=duration,
        is_premium=is_premium,
        video_name=video.filename,
        video_data=await video.read(),
        video_type=video.content_type,
        thumbnail_name=thumbnail.filename if thumbnail else None,
        thumbnail_data=thumbnail_data,
        thumbnail_type=thumbnail.content_type if thumbnail else None,
    )
    logger.info(f"Admin {admin.id} uploaded episode {episode.id}")
    return episode
