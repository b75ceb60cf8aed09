"""Admin episode upload: push media to storage, then record the episode."""
from __future__ import annotations
import logging
import re
import uuid
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from reelstory.config import get_settings
from reelstory.errors import ConflictError, NotFoundError, ValidationError
from reelstory.models import Drama, Episode
from reelstory.services.storage import StorageBackend

logger = logging.getLogger(__name__)

ALLOWED_VIDEO_EXTENSIONS = {".mp4", ".mov", ".m4v", ".webm", ".mkv"}
ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}


def slugify(title: str) -> str:
    slug = re.sub(r"[\W_]+", "-", title.lower()).strip("-")
    return f"{slug or 'episode'}-{uuid.uuid4().hex[:8]}"


def _extension(filename: str | None, allowed: set[str], kind: str) -> str:
    ext = Path(filename or "").suffix.lower()
    if ext not in allowed:
        raise ValidationError(
            f"Unsupported {kind} format '{ext or filename}'. Supported: {', '.join(sorted(allowed))}",
            error="Unsupported file type",
        )
    return ext


def check_upload_size(*sizes: int | None):
    """Reject any file over ``max_upload_mb``; unknown sizes (None) pass."""
    settings = get_settings()
    limit = settings.max_upload_mb * 1024 * 1024
    if any(size is not None and size > limit for size in sizes):
        raise ValidationError(f"File exceeds the {settings.max_upload_mb}MB upload limit", error="File too large")


async def _discard_uploads(storage: StorageBackend, paths: list[str]):
    for path in paths:
        try:
            await storage.delete(path)
        except Exception as e:
            logger.warning(f"Could not remove orphaned upload {path}: {e}")


async def upload_episode(
    db: AsyncSession,
    storage: StorageBackend,
    *,
    title: str,
    description: str,
    drama_id: str,
    duration: int,
    is_premium: bool,
    video_name: str | None,
    video_data: bytes,
    video_type: str | None,
    thumbnail_name: str | None = None,
    thumbnail_data: bytes | None = None,
    thumbnail_type: str | None = None,
) -> Episode:
    settings = get_settings()
    title = title.strip()
    if not title:
        raise ValidationError("Title is required", error="Missing required fields")

    video_ext = _extension(video_name, ALLOWED_VIDEO_EXTENSIONS, "video")
    thumb_ext = _extension(thumbnail_name, ALLOWED_IMAGE_EXTENSIONS, "image") if thumbnail_data else None

    check_upload_size(len(video_data), len(thumbnail_data or b""))
    if not video_data:
        raise ValidationError("Video file is empty", error="Missing required fields")

    if await db.scalar(select(Drama.id).where(Drama.id == drama_id)) is None:
        raise NotFoundError("Drama not found")

    # Same folders the storage sync probes, so a later sync sees these as existing
    slug = slugify(title)
    uploaded = [f"videos/{slug}{video_ext}"]
    video_url = await storage.upload(uploaded[0], video_data, video_type)
    logger.info(f"Uploaded video for '{title}' to {uploaded[0]}")

    thumbnail_url = settings.placeholder_thumbnail_url
    if thumbnail_data:
        uploaded.append(f"images/{slug}{thumb_ext}")
        thumbnail_url = await storage.upload(uploaded[1], thumbnail_data, thumbnail_type)

    episode = Episode(
        title=title,
        description=description or "",
        video_url=video_url,
        thumbnail_url=thumbnail_url,
        duration=duration,
        is_premium=is_premium,
        drama_id=drama_id,
    )
    db.add(episode)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        await _discard_uploads(storage, uploaded)
        raise ConflictError("An episode with this video URL already exists") from e
    return episode
