"""
Activity feed: replies by other users to a user's own top-level threads.

A reply can be linked to its parent in two ways that are not kept in sync:
the parent's children array (cheap, may be stale) and the reply's parent_id
string (authoritative, needs a scan). Both are read and the ids unioned, so a
reply is found as long as either link exists.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.thread import Thread
from models.user import User
from schemas.activity import (
    DEFAULT_AUTHOR_IMAGE,
    DEFAULT_AUTHOR_NAME,
    ActivityAuthor,
    ActivityItem,
)
from services.utils import is_top_level, normalize_parent_id

logger = logging.getLogger(__name__)


def _activity_author(author: User | None) -> ActivityAuthor:
    if author is None:
        return ActivityAuthor(internal_id="", id="")
    return ActivityAuthor(
        internal_id=str(author.id),
        id=author.external_id or "",
        name=author.name or DEFAULT_AUTHOR_NAME,
        image=author.image or DEFAULT_AUTHOR_IMAGE,
    )


async def _resolve_activity(db: AsyncSession, user_id: int) -> list[ActivityItem]:
    user = await db.get(User, user_id)
    if user is None:
        logger.info("user_not_found", extra={"operation": "get_activity", "user_id": user_id})
        return []

    result = await db.execute(
        select(Thread).where(Thread.author_id == user.id, is_top_level()),
    )
    user_threads = result.scalars().all()
    if not user_threads:
        return []

    # parent_id is a string column, so compare against stringified ids
    user_thread_ids = [str(t.id) for t in user_threads]

    ids_from_children: set[int] = set()
    for thread in user_threads:
        ids_from_children.update(thread.children or [])

    result = await db.execute(
        select(Thread.id).where(
            Thread.parent_id.in_(user_thread_ids),
            Thread.author_id != user.id,
        ),
    )
    ids_from_parent = set(result.scalars().all())

    reply_ids = ids_from_children | ids_from_parent
    logger.info(
        "activity_resolved",
        extra={
            "user_id": user_id,
            "threads": len(user_threads),
            "from_children": len(ids_from_children),
            "from_parent_id": len(ids_from_parent),
            "unique": len(reply_ids),
        },
    )
    if not reply_ids:
        return []

    result = await db.execute(
        select(Thread)
        .where(Thread.id.in_(reply_ids), Thread.author_id != user.id)
        .options(selectinload(Thread.author))
        .order_by(Thread.created_at.desc(), Thread.id.desc()),
    )
    return [
        ActivityItem(
            id=str(reply.id),
            parent_id=normalize_parent_id(reply.parent_id),
            text=reply.text,
            author=_activity_author(reply.author),
            created_at=reply.created_at,
        )
        for reply in result.scalars().all()
    ]


async def get_activity(db: AsyncSession, user_id: int) -> list[ActivityItem]:
    """
    Replies by others to the user's top-level threads, newest first.

    Args:
        db: Database session.
        user_id: Internal user key (not the external identity).

    Returns:
        Activity items. Never raises: any failure is logged and reported as an
        empty feed so the activity page still renders.
    """
    try:
        return await _resolve_activity(db, user_id)
    except Exception:
        logger.exception("get_activity_failed", extra={"user_id": user_id})
        return []
