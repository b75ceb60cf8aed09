"""Admin authorization and first-admin bootstrap."""
from __future__ import annotations
import logging
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from reelstory.errors import AdminRequiredError, AuthenticationError
from reelstory.models import AdminBootstrap, User
from reelstory.services.supabase import AuthUser

logger = logging.getLogger(__name__)

BOOTSTRAP_ROW_ID = 1


async def _find_user(db: AsyncSession, user_id: str) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_or_create_user(db: AsyncSession, auth_user: AuthUser) -> tuple[User, bool]:
    """Return the user row for an authenticated identity, creating it if absent.

    The caller commits. Returns (user, created).
    """
    user = await _find_user(db, auth_user.id)
    if user:
        return user, False
    user = User(id=auth_user.id, email=auth_user.email or "", is_admin=False)
    try:
        async with db.begin_nested():
            db.add(user)
    except IntegrityError:
        # inserted by a concurrent request since the lookup
        logger.info(f"User {auth_user.id} created concurrently, reusing existing row")
        return await _find_user(db, auth_user.id), False
    return user, True


async def check_admin(db: AsyncSession, auth_user: AuthUser | None) -> User:
    if auth_user is None:
        raise AuthenticationError(
            "Please log in to access this feature",
            details="No user found in the current session",
        )

    result = await db.execute(select(User).where(User.id == auth_user.id))
    user = result.scalar_one_or_none()

    if user is None:
        logger.info(f"User {auth_user.id} not found in database, creating record")
        try:
            await get_or_create_user(db, auth_user)
            await db.commit()
        except IntegrityError:
            # created by a concurrent request
            await db.rollback()
        raise AdminRequiredError(
            "Admin privileges required",
            details="Your account has been created, but admin access is required for this page",
        )

    if not user.is_admin:
        logger.info(f"User {auth_user.id} does not have admin privileges")
        raise AdminRequiredError(
            "Admin privileges required",
            details="Your account does not have administrator permissions",
        )
    return user


async def _lock_bootstrap(db: AsyncSession, user_id: str) -> None:
    """Take the bootstrap row lock for the rest of the transaction.

    An UPDATE row-locks on PostgreSQL and takes the write lock on SQLite, so a
    concurrent caller waits here until this transaction ends.
    """
    now = datetime.utcnow()
    result = await db.execute(
        update(AdminBootstrap)
        .where(AdminBootstrap.id == BOOTSTRAP_ROW_ID)
        .values(attempted_at=now)
    )
    if result.rowcount:
        return
    # First use on a database that was not seeded by the migration
    try:
        async with db.begin_nested():
            db.add(AdminBootstrap(id=BOOTSTRAP_ROW_ID, attempted_at=now))
    except IntegrityError:
        await db.execute(
            update(AdminBootstrap)
            .where(AdminBootstrap.id == BOOTSTRAP_ROW_ID)
            .values(attempted_at=now)
        )


async def request_admin(db: AsyncSession, auth_user: AuthUser | None) -> User:
    """Grant admin to the caller if, and only if, no admin exists yet."""
    if auth_user is None:
        raise AuthenticationError(
            "Please log in to access this feature",
            details="No user found in the current session",
        )

    try:
        await _lock_bootstrap(db, auth_user.id)

        admin_count = await db.scalar(select(func.count()).select_from(User).where(User.is_admin.is_(True)))
        if admin_count:
            logger.info(f"Admin request from {auth_user.id} refused: {admin_count} admin(s) exist")
            await db.rollback()
            raise AdminRequiredError(
                "Admin users already exist. Ask an existing administrator to grant access.",
                details="Automatic admin assignment is only available while no administrator exists",
            )

        user, _ = await get_or_create_user(db, auth_user)
        user.is_admin = True
        await db.execute(
            update(AdminBootstrap)
            .where(AdminBootstrap.id == BOOTSTRAP_ROW_ID)
            .values(granted_user_id=user.id, granted_at=datetime.utcnow())
        )
        await db.commit()
    except AdminRequiredError:
        raise
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Granted bootstrap admin to user {user.id}")
    return user
