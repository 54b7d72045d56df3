"""Service layer for thread queries, the home feed and posting."""
import logging
from collections.abc import Iterable, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.errors import NotFoundError, WriteFailureError
from core.page_cache import invalidate_paths
from models.community import Community
from models.thread import Thread
from models.user import User
from schemas.thread import (
    ChildAuthor,
    ChildSummary,
    CommentCreate,
    CommunitySummary,
    FeedPage,
    ProfileThread,
    ProfileThreads,
    ThreadCreate,
    ThreadDetail,
)
from schemas.user import AuthorSummary
from services.user_service import get_user_by_external_id
from services.utils import is_reply, is_top_level, normalize_parent_id

logger = logging.getLogger(__name__)

_THREAD_OPTIONS = (selectinload(Thread.author), selectinload(Thread.community))

# Threads per home feed page
FEED_PAGE_SIZE = 30


def _newest_first() -> tuple:
    return (Thread.created_at.desc(), Thread.id.desc())


def _child_ids(threads: Iterable[Thread]) -> list[int]:
    ids: list[int] = []
    for thread in threads:
        ids.extend(thread.children or [])
    return ids


async def _load_threads_by_id(db: AsyncSession, ids: Sequence[int]) -> dict[int, Thread]:
    """Load threads (with author and community) for a list of ids, keyed by id."""
    if not ids:
        return {}
    result = await db.execute(
        select(Thread).where(Thread.id.in_(set(ids))).options(*_THREAD_OPTIONS),
    )
    return {t.id: t for t in result.scalars().all()}


def _populate(thread: Thread, loaded: dict[int, Thread]) -> list[Thread]:
    """Resolve a thread's children array, in array order, dropping dangling ids."""
    return [loaded[cid] for cid in (thread.children or []) if cid in loaded]


def _author_summary(user: User | None) -> AuthorSummary | None:
    if user is None:
        return None
    return AuthorSummary(id=user.external_id, name=user.name, image=user.image or "")


def _community_summary(community: Community | None) -> CommunitySummary | None:
    if community is None:
        return None
    return CommunitySummary(
        id=community.external_id, name=community.name, image=community.image or "",
    )


def _to_detail(
    thread: Thread,
    loaded: dict[int, Thread],
    depth: int,
) -> ThreadDetail:
    """Shape a thread and `depth` levels of its replies."""
    children = []
    if depth > 0:
        children = [_to_detail(c, loaded, depth - 1) for c in _populate(thread, loaded)]
    return ThreadDetail(
        id=str(thread.id),
        text=thread.text,
        parent_id=normalize_parent_id(thread.parent_id),
        author=_author_summary(thread.author),
        community=_community_summary(thread.community),
        created_at=thread.created_at,
        children=children,
    )


def _to_profile_thread(
    thread: Thread,
    owner: User,
    loaded: dict[int, Thread],
) -> ProfileThread:
    # The thread's author may be missing or incomplete; fall back to the owner's
    # live profile.
    author = thread.author
    return ProfileThread(
        id=str(thread.id),
        text=thread.text,
        parent_id=normalize_parent_id(thread.parent_id),
        author=AuthorSummary(
            name=(author.name if author else None) or owner.name,
            image=(author.image if author else None) or owner.image or "",
            id=(author.external_id if author else None) or owner.external_id,
        ),
        community=_community_summary(thread.community),
        created_at=thread.created_at,
        children=[
            ChildSummary(author=ChildAuthor(image=(c.author.image if c.author else "") or ""))
            for c in _populate(thread, loaded)
        ],
    )


async def _fetch_profile_threads(
    db: AsyncSession,
    external_id: str,
    *,
    replies: bool,
) -> ProfileThreads | None:
    operation = "fetch_user_replies" if replies else "fetch_user_posts"
    try:
        user = await get_user_by_external_id(db, external_id)
        if user is None:
            logger.info("user_not_found", extra={"operation": operation, "external_id": external_id})
            return None

        result = await db.execute(
            select(Thread)
            .where(Thread.author_id == user.id, is_reply() if replies else is_top_level())
            .options(*_THREAD_OPTIONS)
            .order_by(*_newest_first()),
        )
        threads = result.scalars().all()
        loaded = await _load_threads_by_id(db, _child_ids(threads))
    except SQLAlchemyError:
        logger.exception(f"{operation}_failed", extra={"external_id": external_id})
        raise

    return ProfileThreads(
        name=user.name,
        image=user.image or "",
        id=user.external_id,
        threads=[_to_profile_thread(t, user, loaded) for t in threads],
    )


async def fetch_user_posts(db: AsyncSession, external_id: str) -> ProfileThreads | None:
    """Top-level threads authored by a user, newest first."""
    return await _fetch_profile_threads(db, external_id, replies=False)


async def fetch_user_replies(db: AsyncSession, external_id: str) -> ProfileThreads | None:
    """Replies authored by a user, newest first."""
    return await _fetch_profile_threads(db, external_id, replies=True)


async def fetch_user_tagged(db: AsyncSession, external_id: str) -> ProfileThreads | None:
    """
    Threads a user is tagged in.

    There is no mention system, so the list is always empty; only the envelope
    (and the None result for unknown users) is meaningful.
    """
    user = await get_user_by_external_id(db, external_id)
    if user is None:
        return None
    return ProfileThreads(
        name=user.name, image=user.image or "", id=user.external_id, threads=[],
    )


async def fetch_posts(
    db: AsyncSession,
    page_number: int = 1,
    page_size: int = FEED_PAGE_SIZE,
) -> FeedPage:
    """
    Home feed: top-level threads from everyone, newest first.

    Failures degrade to an empty page so the home page still renders.
    """
    skip = (page_number - 1) * page_size
    try:
        count_result = await db.execute(
            select(func.count()).select_from(Thread).where(is_top_level()),
        )
        total = count_result.scalar() or 0

        result = await db.execute(
            select(Thread)
            .where(is_top_level())
            .options(*_THREAD_OPTIONS)
            .order_by(*_newest_first())
            .offset(skip)
            .limit(page_size),
        )
        posts = result.scalars().all()
        loaded = await _load_threads_by_id(db, _child_ids(posts))
    except SQLAlchemyError:
        logger.exception(
            "fetch_posts_failed", extra={"page_number": page_number, "page_size": page_size},
        )
        return FeedPage(posts=[], has_next=False)

    return FeedPage(
        posts=[_to_detail(p, loaded, depth=1) for p in posts],
        has_next=total > skip + len(posts),
    )


async def fetch_thread_by_id(db: AsyncSession, thread_id: int) -> ThreadDetail | None:
    """One thread with its replies and their replies (authors populated)."""
    result = await db.execute(
        select(Thread).where(Thread.id == thread_id).options(*_THREAD_OPTIONS),
    )
    thread = result.scalar_one_or_none()
    if thread is None:
        return None

    loaded = await _load_threads_by_id(db, thread.children or [])
    grandchildren = await _load_threads_by_id(db, _child_ids(loaded.values()))
    loaded.update(grandchildren)
    return _to_detail(thread, loaded, depth=2)


async def _get_community_by_external_id(
    db: AsyncSession, external_id: str,
) -> Community | None:
    result = await db.execute(select(Community).where(Community.external_id == external_id))
    return result.scalar_one_or_none()


async def create_thread(db: AsyncSession, data: ThreadCreate) -> ThreadDetail:
    """
    Post a top-level thread.

    Raises:
        NotFoundError: The author (or the named community) does not exist.
        WriteFailureError: The thread could not be saved.
    """
    author = await get_user_by_external_id(db, data.author_id)
    if author is None:
        raise NotFoundError("User", data.author_id)

    community = None
    if data.community_id:
        community = await _get_community_by_external_id(db, data.community_id)
        if community is None:
            raise NotFoundError("Community", data.community_id)

    thread = Thread(text=data.text, author=author, community=community, children=[])
    try:
        db.add(thread)
        await db.flush()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("create_thread_failed", extra={"author_id": data.author_id})
        raise WriteFailureError(f"Failed to create thread: {e}") from e

    logger.info("thread_created", extra={"thread_id": thread.id, "author_id": data.author_id})
    await invalidate_paths(data.path)
    return _to_detail(thread, {}, depth=0)


async def add_comment_to_thread(
    db: AsyncSession,
    thread_id: int,
    data: CommentCreate,
) -> ThreadDetail:
    """
    Reply to a thread.

    The reply points at its parent through parent_id and is appended to the
    parent's children array.

    Raises:
        NotFoundError: The parent thread or the author does not exist.
        WriteFailureError: The reply could not be saved.
    """
    parent = await db.get(Thread, thread_id)
    if parent is None:
        raise NotFoundError("Thread", thread_id)
    author = await get_user_by_external_id(db, data.author_id)
    if author is None:
        raise NotFoundError("User", data.author_id)

    reply = Thread(
        text=data.text, author=author, community=None, parent_id=str(parent.id), children=[],
    )
    try:
        db.add(reply)
        await db.flush()
        # Reassign rather than append so the JSON column is marked dirty
        parent.children = [*(parent.children or []), reply.id]
        await db.flush()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(
            "add_comment_failed", extra={"thread_id": thread_id, "author_id": data.author_id},
        )
        raise WriteFailureError(f"Failed to add comment to thread: {e}") from e

    logger.info("comment_added", extra={"thread_id": thread_id, "reply_id": reply.id})
    await invalidate_paths(data.path)
    return _to_detail(reply, {}, depth=0)
