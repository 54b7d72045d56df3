"""Pydantic schemas for the activity feed."""
from datetime import datetime

from pydantic import BaseModel

DEFAULT_AUTHOR_NAME = "Unknown"
DEFAULT_AUTHOR_IMAGE = "/assets/user.svg"


class ActivityAuthor(BaseModel):
    """Author of a reply, with both identities so the UI can link to a profile."""

    internal_id: str
    id: str
    name: str = DEFAULT_AUTHOR_NAME
    image: str = DEFAULT_AUTHOR_IMAGE


class ActivityItem(BaseModel):
    """A reply by someone else to one of the user's threads."""

    id: str
    parent_id: str | None
    text: str
    author: ActivityAuthor
    created_at: datetime
