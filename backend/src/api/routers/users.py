"""User profile endpoints."""
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_external_id
from schemas.thread import ProfileThreads
from schemas.user import (
    ProfileUpdate,
    UserListResponse,
    UserResponse,
    UserSearchQuery,
    UserUpdate,
)
from services import thread_service, user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(
    external_id: str = Depends(get_current_external_id),
    db: AsyncSession = Depends(get_async_session),
) -> UserResponse:
    """Get the caller's profile. 404 means onboarding has not happened yet."""
    user = await user_service.fetch_user(db, external_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.put("/me", status_code=204)
async def save_me(
    data: ProfileUpdate,
    external_id: str = Depends(get_current_external_id),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Create or update the caller's profile (completes onboarding)."""
    await user_service.update_user(
        db, UserUpdate(external_id=external_id, **data.model_dump()),
    )


@router.get("/", response_model=UserListResponse)
async def list_users(
    q: str = Query(default="", description="Search username or name"),
    page: int = Query(default=1, ge=1, description="1-based page number"),
    page_size: int = Query(default=20, ge=1, le=100, description="Users per page"),
    sort: Literal["asc", "desc"] = Query(default="desc", description="Sort by join date"),
    external_id: str = Depends(get_current_external_id),
    db: AsyncSession = Depends(get_async_session),
) -> UserListResponse:
    """Search users other than the caller."""
    return await user_service.fetch_users(
        db,
        UserSearchQuery(
            user_id=external_id,
            search_string=q,
            page_number=page,
            page_size=page_size,
            sort_by=sort,
        ),
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    _: str = Depends(get_current_external_id),
    db: AsyncSession = Depends(get_async_session),
) -> UserResponse:
    """Get a user's profile by external id."""
    user = await user_service.fetch_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _profile_tab(result: ProfileThreads | None) -> ProfileThreads:
    if result is None:
        raise HTTPException(status_code=404, detail="User not found")
    return result


@router.get("/{user_id}/posts", response_model=ProfileThreads)
async def get_user_posts(
    user_id: str,
    _: str = Depends(get_current_external_id),
    db: AsyncSession = Depends(get_async_session),
) -> ProfileThreads:
    """Top-level threads by a user."""
    return _profile_tab(await thread_service.fetch_user_posts(db, user_id))


@router.get("/{user_id}/replies", response_model=ProfileThreads)
async def get_user_replies(
    user_id: str,
    _: str = Depends(get_current_external_id),
    db: AsyncSession = Depends(get_async_session),
) -> ProfileThreads:
    """Replies by a user."""
    return _profile_tab(await thread_service.fetch_user_replies(db, user_id))


@router.get("/{user_id}/tagged", response_model=ProfileThreads)
async def get_user_tagged(
    user_id: str,
    _: str = Depends(get_current_external_id),
    db: AsyncSession = Depends(get_async_session),
) -> ProfileThreads:
    """Threads a user is tagged in (always empty)."""
    return _profile_tab(await thread_service.fetch_user_tagged(db, user_id))
