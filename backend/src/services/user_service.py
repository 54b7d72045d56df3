"""Service layer for user profile operations."""
import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.errors import WriteFailureError
from core.page_cache import invalidate_paths, paths_for_profile_save
from models.thread import Thread
from models.user import User
from schemas.user import (
    AuthorSummary,
    CommunityResponse,
    UserListItem,
    UserListResponse,
    UserResponse,
    UserSearchQuery,
    UserThreadItem,
    UserUpdate,
)
from services.utils import escape_ilike, normalize_parent_id

logger = logging.getLogger(__name__)


async def get_user_by_external_id(db: AsyncSession, external_id: str) -> User | None:
    """Resolve an external identity to the user row (no relationships loaded)."""
    result = await db.execute(select(User).where(User.external_id == external_id))
    return result.scalar_one_or_none()


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(
        internal_id=user.id,
        id=user.external_id,
        username=user.username,
        name=user.name,
        bio=user.bio,
        image=user.image or "",
        onboarded=user.onboarded,
        communities=[
            CommunityResponse(
                id=c.external_id,
                username=c.username,
                name=c.name,
                image=c.image or "",
                bio=c.bio,
            )
            for c in user.communities
        ],
        threads=[
            UserThreadItem(
                id=str(t.id),
                text=t.text,
                parent_id=normalize_parent_id(t.parent_id),
                author=AuthorSummary(
                    id=t.author.external_id,
                    name=t.author.name,
                    image=t.author.image or "",
                ),
                created_at=t.created_at,
            )
            for t in user.threads
        ],
    )


async def fetch_user(db: AsyncSession, external_id: str) -> UserResponse | None:
    """
    Fetch one user with communities and threads expanded.

    Never raises: callers use None to decide whether onboarding is needed, so
    lookup failures are logged and reported as absence.
    """
    try:
        result = await db.execute(
            select(User)
            .where(User.external_id == external_id)
            .options(
                selectinload(User.communities),
                selectinload(User.threads).selectinload(Thread.author),
            ),
        )
        user = result.scalar_one_or_none()
    except SQLAlchemyError:
        logger.exception("fetch_user_failed", extra={"external_id": external_id})
        return None

    if user is None:
        logger.info("user_not_found", extra={"external_id": external_id})
        return None
    return _user_to_response(user)


async def update_user(db: AsyncSession, data: UserUpdate) -> None:
    """
    Create or update a profile keyed on external identity.

    Any successful save marks the user as onboarded. Write errors propagate as
    WriteFailureError so the caller can show a failure state.
    """
    try:
        user = await get_user_by_external_id(db, data.external_id)
        if user is None:
            user = User(external_id=data.external_id)
            db.add(user)
        user.username = data.username
        user.name = data.name
        user.bio = data.bio
        user.image = data.image
        user.onboarded = True
        await db.flush()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("update_user_failed", extra={"external_id": data.external_id})
        raise WriteFailureError(f"Failed to create/update user: {e}") from e

    logger.info("user_saved", extra={"external_id": data.external_id, "path": data.path})
    await invalidate_paths(*paths_for_profile_save(data.path))


async def fetch_users(db: AsyncSession, query: UserSearchQuery) -> UserListResponse:
    """
    List users other than the requester, optionally filtered by name/username.

    Count and page are separate queries: the count is unpaginated.

    Returns:
        The requested page and whether more users match beyond it.
    """
    skip = (query.page_number - 1) * query.page_size

    filters = [User.external_id != query.user_id]
    if query.search_string.strip():
        pattern = f"%{escape_ilike(query.search_string)}%"
        filters.append(
            or_(
                User.username.ilike(pattern, escape="\\"),
                User.name.ilike(pattern, escape="\\"),
            ),
        )

    if query.sort_by == "desc":
        order = (User.created_at.desc(), User.id.desc())
    else:
        order = (User.created_at.asc(), User.id.asc())

    try:
        count_result = await db.execute(
            select(func.count()).select_from(User).where(*filters),
        )
        total = count_result.scalar() or 0

        result = await db.execute(
            select(User).where(*filters).order_by(*order).offset(skip).limit(query.page_size),
        )
        users = result.scalars().all()
    except SQLAlchemyError:
        logger.exception(
            "fetch_users_failed",
            extra={"user_id": query.user_id, "search": query.search_string},
        )
        raise

    return UserListResponse(
        users=[
            UserListItem(
                internal_id=u.id,
                id=u.external_id,
                username=u.username,
                name=u.name,
                image=u.image or "",
                bio=u.bio,
                created_at=u.created_at,
            )
            for u in users
        ],
        has_next=total > skip + len(users),
    )
