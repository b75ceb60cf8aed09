"""Object storage backends: Firebase Storage and an in-memory stand-in."""
from __future__ import annotations
import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from urllib.parse import quote

from reelstory.config import get_settings

logger = logging.getLogger(__name__)

FIREBASE_DOWNLOAD_HOST = "https://firebasestorage.googleapis.com"


class StorageError(Exception):
    pass


class StorageObjectNotFound(StorageError):
    def __init__(self, path: str):
        super().__init__(f"Object does not exist: {path}")
        self.path = path


@dataclass(frozen=True)
class StoredFile:
    name: str  # base name, e.g. "ep1.mp4"
    full_path: str  # e.g. "videos/ep1.mp4"


class StorageBackend:
    """Interface shared by the Firebase and in-memory backends."""

    async def list_files(self, prefix: str) -> list[StoredFile]:
        """Files directly under ``prefix`` (no nested folders)."""
        raise NotImplementedError

    async def get_download_url(self, path: str) -> str:
        """Raises StorageObjectNotFound when nothing is stored at ``path``."""
        raise NotImplementedError

    async def get_metadata(self, path: str) -> dict:
        raise NotImplementedError

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> str:
        """Store ``data`` at ``path`` and return its download URL."""
        raise NotImplementedError

    async def delete(self, path: str) -> None:
        """Remove the object at ``path``; missing objects are ignored."""
        raise NotImplementedError


def _normalize_prefix(prefix: str) -> str:
    prefix = prefix.strip("/")
    return f"{prefix}/" if prefix else ""


class FirebaseStorage(StorageBackend):
    """Firebase Storage through the Admin SDK; blocking calls run in a worker thread."""

    def __init__(self, bucket_name: str, credentials_path: str | None = None):
        import firebase_admin
        from firebase_admin import credentials, storage as firebase_storage

        try:
            firebase_admin.get_app()
        except ValueError:
            cred = credentials.Certificate(credentials_path) if credentials_path else credentials.ApplicationDefault()
            firebase_admin.initialize_app(cred, {"storageBucket": bucket_name})
            logger.info(f"Firebase initialised for bucket '{bucket_name}'")
        self.bucket = firebase_storage.bucket(bucket_name or None)

    def _download_url(self, blob) -> str:
        tokens = (blob.metadata or {}).get("firebaseStorageDownloadTokens")
        if tokens:
            token = tokens.split(",")[0]
            return (
                f"{FIREBASE_DOWNLOAD_HOST}/v0/b/{self.bucket.name}/o/"
                f"{quote(blob.name, safe='')}?alt=media&token={token}"
            )
        return blob.public_url

    def _list_files(self, prefix: str) -> list[StoredFile]:
        files = []
        for blob in self.bucket.list_blobs(prefix=_normalize_prefix(prefix), delimiter="/"):
            if blob.name.endswith("/"):
                continue  # folder placeholder
            files.append(StoredFile(name=blob.name.rsplit("/", 1)[-1], full_path=blob.name))
        return files

    def _get_blob(self, path: str):
        blob = self.bucket.get_blob(path)
        if blob is None:
            raise StorageObjectNotFound(path)
        return blob

    def _get_download_url(self, path: str) -> str:
        return self._download_url(self._get_blob(path))

    def _get_metadata(self, path: str) -> dict:
        blob = self._get_blob(path)
        return {
            "contentType": blob.content_type,
            "size": blob.size,
            "updated": blob.updated.isoformat() if blob.updated else None,
        }

    def _upload(self, path: str, data: bytes, content_type: str | None) -> str:
        blob = self.bucket.blob(path)
        blob.metadata = {"firebaseStorageDownloadTokens": str(uuid.uuid4())}
        blob.upload_from_string(data, content_type=content_type or "application/octet-stream")
        return self._download_url(blob)

    def _delete(self, path: str):
        blob = self.bucket.get_blob(path)
        if blob is not None:
            blob.delete()

    async def list_files(self, prefix: str) -> list[StoredFile]:
        return await asyncio.to_thread(self._list_files, prefix)

    async def get_download_url(self, path: str) -> str:
        return await asyncio.to_thread(self._get_download_url, path)

    async def get_metadata(self, path: str) -> dict:
        return await asyncio.to_thread(self._get_metadata, path)

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> str:
        return await asyncio.to_thread(self._upload, path, data, content_type)

    async def delete(self, path: str) -> None:
        await asyncio.to_thread(self._delete, path)


@dataclass
class _MemoryObject:
    data: bytes
    content_type: str
    updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class MemoryStorage(StorageBackend):
    """Process-local storage used when Firebase is disabled and in tests."""

    def __init__(self, base_url: str = "https://mock-firebase-url.com"):
        self.base_url = base_url.rstrip("/")
        self._objects: dict[str, _MemoryObject] = {}

    def put(self, path: str, data: bytes = b"", content_type: str = "application/octet-stream"):
        self._objects[path.lstrip("/")] = _MemoryObject(data=data, content_type=content_type)

    async def list_files(self, prefix: str) -> list[StoredFile]:
        prefix = _normalize_prefix(prefix)
        files = []
        for path in sorted(self._objects):
            if not path.startswith(prefix):
                continue
            rest = path[len(prefix):]
            if not rest or "/" in rest:
                continue
            files.append(StoredFile(name=rest, full_path=path))
        return files

    async def get_download_url(self, path: str) -> str:
        path = path.lstrip("/")
        if path not in self._objects:
            raise StorageObjectNotFound(path)
        return f"{self.base_url}/{quote(path)}"

    async def get_metadata(self, path: str) -> dict:
        obj = self._objects.get(path.lstrip("/"))
        if obj is None:
            raise StorageObjectNotFound(path)
        return {
            "contentType": obj.content_type,
            "size": len(obj.data),
            "updated": obj.updated.isoformat(),
        }

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> str:
        self.put(path, data, content_type or "application/octet-stream")
        return await self.get_download_url(path)

    async def delete(self, path: str) -> None:
        self._objects.pop(path.lstrip("/"), None)


@lru_cache
def get_storage() -> StorageBackend:
    settings = get_settings()
    if settings.disable_firebase:
        logger.info("Firebase disabled; using in-memory storage")
        return MemoryStorage()
    return FirebaseStorage(settings.firebase_storage_bucket, settings.firebase_credentials_path)
