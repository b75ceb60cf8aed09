"""Reconcile the storage ``videos/`` folder with the episode table."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reelstory.config import get_settings
from reelstory.errors import NotFoundError, UpstreamError, ValidationError
from reelstory.models import Drama, Episode
from reelstory.services.storage import StorageBackend, StorageObjectNotFound, StoredFile

logger = logging.getLogger(__name__)

# Probe order matters: already-synced rows were resolved with it.
THUMBNAIL_FOLDERS = ("images", "thumbnails", "videos/thumbnails")
THUMBNAIL_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")


@dataclass
class SyncReport:
    added: list[dict] = field(default_factory=list)
    existing: list[str] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)

    @property
    def message(self) -> str:
        return (
            f"Sync completed. Added: {len(self.added)}, "
            f"Already existing: {len(self.existing)}, Errors: {len(self.errors)}"
        )

    def as_dict(self) -> dict:
        return {"added": self.added, "existing": self.existing, "errors": self.errors}


def strip_extension(file_name: str) -> str:
    return os.path.splitext(file_name)[0]


def title_from_file_name(file_name: str) -> str:
    return strip_extension(file_name).replace("-", " ")


def thumbnail_candidates(file_name: str) -> list[str]:
    base = strip_extension(file_name)
    return [f"{folder}/{base}{ext}" for folder in THUMBNAIL_FOLDERS for ext in THUMBNAIL_EXTENSIONS]


async def resolve_thumbnail(storage: StorageBackend, file_name: str, placeholder: str) -> str:
    for path in thumbnail_candidates(file_name):
        try:
            url = await storage.get_download_url(path)
        except StorageObjectNotFound:
            continue
        except Exception as e:
            logger.debug(f"Skipping thumbnail candidate {path} for {file_name}: {e}")
            continue
        logger.debug(f"Found thumbnail for {file_name} at {path}")
        return url
    logger.info(f"No thumbnail found for {file_name}, using placeholder")
    return placeholder


class DramaResolver:
    """Pick the drama an imported file belongs to."""

    def __init__(self, default_id: str, drama_map: dict[str, str] | None = None):
        self.default_id = default_id
        # longest prefix first
        self._prefixes = sorted((drama_map or {}).items(), key=lambda kv: len(kv[0]), reverse=True)

    def for_file(self, file_name: str) -> str:
        base = strip_extension(file_name)
        for prefix, drama_id in self._prefixes:
            if base.startswith(prefix):
                return drama_id
        return self.default_id


async def _drama_exists(db: AsyncSession, drama_id: str) -> bool:
    return await db.scalar(select(Drama.id).where(Drama.id == drama_id)) is not None


async def build_drama_resolver(
    db: AsyncSession,
    drama_id: str | None = None,
    drama_map: dict[str, str] | None = None,
) -> DramaResolver:
    settings = get_settings()
    drama_map = drama_map or {}

    for mapped_id in {*drama_map.values(), *([drama_id] if drama_id else [])}:
        if not await _drama_exists(db, mapped_id):
            raise NotFoundError(f"Drama not found: {mapped_id}", error="Drama not found")

    default_id = drama_id
    if default_id is None and settings.sync_default_drama_id:
        if await _drama_exists(db, settings.sync_default_drama_id):
            default_id = settings.sync_default_drama_id
        else:
            logger.warning(f"Configured sync drama {settings.sync_default_drama_id} does not exist, ignoring")
    if default_id is None:
        # legacy behaviour: everything lands in the oldest drama
        default_id = await db.scalar(select(Drama.id).order_by(Drama.created_at, Drama.id).limit(1))
    if default_id is None:
        raise ValidationError("No drama found in database. Please create a drama first.")
    return DramaResolver(default_id, drama_map)


async def _import_file(
    db: AsyncSession,
    storage: StorageBackend,
    item: StoredFile,
    url: str,
    drama_id: str,
) -> Episode:
    settings = get_settings()
    try:
        metadata = await storage.get_metadata(item.full_path)
        logger.info(
            f"Metadata for {item.name}: type={metadata.get('contentType')} "
            f"size={metadata.get('size')} updated={metadata.get('updated')}"
        )
    except Exception as e:
        logger.warning(f"Could not get metadata for {item.name}: {e}")

    thumbnail_url = await resolve_thumbnail(storage, item.name, settings.placeholder_thumbnail_url)
    title = title_from_file_name(item.name)

    episode = Episode(
        title=title,
        description=f"Automatically imported from Firebase Storage: {item.name}",
        video_url=url,
        thumbnail_url=thumbnail_url,
        duration=settings.sync_default_duration,  # real length unknown
        is_premium=False,
        drama_id=drama_id,
    )
    db.add(episode)
    await db.commit()
    return episode


async def sync_storage(
    db: AsyncSession,
    storage: StorageBackend,
    drama_id: str | None = None,
    drama_map: dict[str, str] | None = None,
) -> SyncReport:
    """Create an episode for every video not yet in the table.

    Each file is committed on its own; a failing file is reported and skipped.
    """
    settings = get_settings()
    prefix = settings.sync_videos_prefix

    try:
        items = await storage.list_files(prefix)
    except Exception as e:
        logger.error(f"Error listing storage folder '{prefix}': {e}")
        raise UpstreamError(
            "Could not access the storage videos folder",
            details=str(e),
            error="Firebase Storage Access Error",
        ) from e
    logger.info(f"Found {len(items)} videos under '{prefix}'")

    result = await db.execute(select(Episode.video_url))
    known_urls = {row[0] for row in result.all()}

    resolver = await build_drama_resolver(db, drama_id, drama_map)
    report = SyncReport()

    for item in items:
        logger.info(f"Processing video file: {item.name} ({item.full_path})")
        try:
            url = await storage.get_download_url(item.full_path)
        except Exception as e:
            logger.error(f"Error getting download URL for {item.name}: {e}")
            report.errors.append({"fileName": item.name, "error": f"Failed to get download URL: {e}"})
            continue

        if url in known_urls:
            logger.info(f"Video already exists in database: {item.name}")
            report.existing.append(item.name)
            continue

        try:
            episode = await _import_file(db, storage, item, url, resolver.for_file(item.name))
        except Exception as e:
            await db.rollback()
            logger.error(f"Error processing video {item.name}: {e}")
            report.errors.append({"fileName": item.name, "error": str(e)})
            continue

        known_urls.add(url)
        logger.info(f"Added episode {episode.id} - {episode.title}")
        report.added.append({"id": episode.id, "title": episode.title, "fileName": item.name})

    logger.info(report.message)
    return report
