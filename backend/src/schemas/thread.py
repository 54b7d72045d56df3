"""Pydantic schemas for thread endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from schemas.user import AuthorSummary


class CommunitySummary(BaseModel):
    """Community fields shown on a thread card."""

    id: str
    name: str
    image: str


class ChildAuthor(BaseModel):
    """Only the avatar of a reply's author is shown on profile cards."""

    image: str


class ChildSummary(BaseModel):
    """A reply as summarized under a profile thread."""

    author: ChildAuthor


class ProfileThread(BaseModel):
    """A thread on a user's profile tab."""

    id: str
    text: str
    parent_id: str | None
    author: AuthorSummary
    community: CommunitySummary | None
    created_at: datetime
    children: list[ChildSummary]


class ProfileThreads(BaseModel):
    """Envelope for the posts, replies and tagged tabs of a profile."""

    name: str
    image: str
    id: str
    threads: list[ProfileThread]


class ThreadDetail(BaseModel):
    """A thread with its author, community and replies populated."""

    id: str
    text: str
    parent_id: str | None
    author: AuthorSummary | None
    community: CommunitySummary | None
    created_at: datetime
    children: list["ThreadDetail"] = []


class FeedPage(BaseModel):
    """Schema for a page of the home feed."""

    posts: list[ThreadDetail]
    has_next: bool


def validate_thread_text(text: str) -> str:
    """Thread text must contain something other than whitespace."""
    if not text.strip():
        raise ValueError("Thread text must not be empty")
    return text


class ThreadCreate(BaseModel):
    """Schema for posting a new top-level thread."""

    text: str
    author_id: str  # External identity of the author
    community_id: str | None = None  # External id of the community
    path: str = "/"

    @field_validator("text")
    @classmethod
    def check_text(cls, v: str) -> str:
        """Reject empty text."""
        return validate_thread_text(v)


class CommentCreate(BaseModel):
    """Schema for replying to an existing thread."""

    text: str
    author_id: str
    path: str = "/"

    @field_validator("text")
    @classmethod
    def check_text(cls, v: str) -> str:
        """Reject empty text."""
        return validate_thread_text(v)


class ThreadBody(BaseModel):
    """Request body for POST /threads/ (author comes from auth)."""

    text: str
    community_id: str | None = None
    path: str = "/"

    @field_validator("text")
    @classmethod
    def check_text(cls, v: str) -> str:
        """Reject empty text."""
        return validate_thread_text(v)


class ReplyBody(BaseModel):
    """Request body for POST /threads/{id}/replies; replies never carry a community."""

    model_config = ConfigDict(extra="forbid")

    text: str
    path: str = "/"

    @field_validator("text")
    @classmethod
    def check_text(cls, v: str) -> str:
        """Reject empty text."""
        return validate_thread_text(v)
