"""Shared FastAPI dependencies: session resolution, admin guard, storage."""
import logging
from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from reelstory.config import get_settings
from reelstory.database import get_db
from reelstory.errors import AuthenticationError
from reelstory.models import User
from reelstory.services.admin import check_admin
from reelstory.services.storage import StorageBackend, get_storage
from reelstory.services.supabase import AuthUser, SupabaseAuthClient, SupabaseAuthError, extract_access_token

logger = logging.getLogger(__name__)


@lru_cache
def get_auth_client() -> SupabaseAuthClient:
    settings = get_settings()
    return SupabaseAuthClient(
        settings.supabase_url,
        settings.supabase_anon_key,
        timeout=settings.supabase_timeout_seconds,
    )


async def get_optional_user(
    request: Request,
    client: SupabaseAuthClient = Depends(get_auth_client),
) -> AuthUser | None:
    token = extract_access_token(request.headers, request.cookies)
    if not token:
        return None
    try:
        return await client.get_user(token)
    except SupabaseAuthError as e:
        logger.error(f"Authentication error: {e}")
        raise AuthenticationError(
            str(e),
            details="Session may have expired. Please log in again.",
            error="Authentication error",
        ) from e


async def get_current_user(user: AuthUser | None = Depends(get_optional_user)) -> AuthUser:
    if user is None:
        raise AuthenticationError("Please log in to access this feature")
    return user


async def require_admin(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    return await check_admin(db, user)


def get_storage_backend() -> StorageBackend:
    return get_storage()
