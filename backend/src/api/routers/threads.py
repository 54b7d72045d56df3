"""Thread feed and posting endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_external_id
from core.page_cache import get_page_cache
from schemas.thread import (
    CommentCreate,
    FeedPage,
    ReplyBody,
    ThreadBody,
    ThreadCreate,
    ThreadDetail,
)
from services import thread_service

router = APIRouter(prefix="/threads", tags=["threads"])

HOME_PATH = "/"


@router.get("/", response_model=FeedPage)
async def list_threads(
    page: int = Query(default=1, ge=1, description="1-based page number"),
    page_size: int = Query(
        default=thread_service.FEED_PAGE_SIZE, ge=1, le=100, description="Threads per page",
    ),
    db: AsyncSession = Depends(get_async_session),
) -> FeedPage:
    """
    Home feed of top-level threads, newest first.

    The default first page is cached under the home path and evicted whenever a
    thread is posted there.
    """
    cacheable = page == 1 and page_size == thread_service.FEED_PAGE_SIZE
    cache = get_page_cache()
    if cacheable and cache is not None:
        cached = await cache.get(HOME_PATH)
        if cached is not None:
            return FeedPage.model_validate_json(cached)

    feed = await thread_service.fetch_posts(db, page, page_size)
    if cacheable and cache is not None and feed.posts:
        await cache.store(HOME_PATH, feed.model_dump_json())
    return feed


@router.get("/{thread_id}", response_model=ThreadDetail)
async def get_thread(
    thread_id: int,
    db: AsyncSession = Depends(get_async_session),
) -> ThreadDetail:
    """Get a thread with its replies."""
    thread = await thread_service.fetch_thread_by_id(db, thread_id)
    if thread is None:
        raise HTTPException(status_code=404, detail="Thread not found")
    return thread


@router.post("/", response_model=ThreadDetail, status_code=201)
async def create_thread(
    data: ThreadBody,
    external_id: str = Depends(get_current_external_id),
    db: AsyncSession = Depends(get_async_session),
) -> ThreadDetail:
    """Post a new thread as the caller."""
    return await thread_service.create_thread(
        db,
        ThreadCreate(
            text=data.text,
            author_id=external_id,
            community_id=data.community_id,
            path=data.path,
        ),
    )


@router.post("/{thread_id}/replies", response_model=ThreadDetail, status_code=201)
async def reply_to_thread(
    thread_id: int,
    data: ReplyBody,
    external_id: str = Depends(get_current_external_id),
    db: AsyncSession = Depends(get_async_session),
) -> ThreadDetail:
    """Reply to a thread as the caller."""
    return await thread_service.add_comment_to_thread(
        db,
        thread_id,
        CommentCreate(text=data.text, author_id=external_id, path=data.path),
    )
