"""Activity feed endpoint."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_external_id
from schemas.activity import ActivityItem
from services import activity_service, user_service

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("/", response_model=list[ActivityItem])
async def list_activity(
    external_id: str = Depends(get_current_external_id),
    db: AsyncSession = Depends(get_async_session),
) -> list[ActivityItem]:
    """
    Replies by other users to the caller's threads, newest first.

    Callers that have not completed onboarding get 403.
    """
    user = await user_service.fetch_user(db, external_id)
    if user is None or not user.onboarded:
        raise HTTPException(status_code=403, detail="Onboarding required")
    return await activity_service.get_activity(db, user.internal_id)
