"""FastAPI dependencies for injection."""
from fastapi import Depends, Header, HTTPException

from core.config import Settings, get_settings
from db.session import get_async_session


async def get_current_external_id(
    x_user_id: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    External identity of the caller.

    The identity provider runs in front of this service and forwards the
    authenticated subject in X-User-Id. In dev mode a fixed id is used when the
    header is absent.
    """
    if x_user_id:
        return x_user_id
    if settings.dev_mode:
        return settings.dev_user_id
    raise HTTPException(status_code=401, detail="Not authenticated")


__all__ = [
    "get_async_session",
    "get_current_external_id",
    "get_settings",
]
