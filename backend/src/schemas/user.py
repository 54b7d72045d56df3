"""Pydantic schemas for user profile endpoints."""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class AuthorSummary(BaseModel):
    """Minimal public fields of a thread author."""

    id: str  # External identity
    name: str
    image: str


class CommunityResponse(BaseModel):
    """Schema for a community a user belongs to."""

    id: str
    username: str
    name: str
    image: str
    bio: str | None


class UserThreadItem(BaseModel):
    """A thread listed on a user's record."""

    id: str
    text: str
    parent_id: str | None
    author: AuthorSummary
    created_at: datetime


class UserResponse(BaseModel):
    """Schema for a single user with communities and threads expanded."""

    internal_id: int
    id: str  # External identity
    username: str
    name: str
    bio: str | None
    image: str
    onboarded: bool
    communities: list[CommunityResponse]
    threads: list[UserThreadItem]


def normalize_username(username: str) -> str:
    """Usernames are stored stripped and lowercase and must not end up empty."""
    username = username.strip().lower()
    if not username:
        raise ValueError("Username must not be blank")
    return username


class UserUpdate(BaseModel):
    """
    Schema for saving a profile (onboarding or profile edit).

    path names the page the save came from; it decides which cached pages
    are invalidated afterwards.
    """

    external_id: str
    username: str = Field(min_length=1)
    name: str = Field(min_length=1)
    bio: str = ""
    image: str = ""
    path: str = "/onboarding"

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        """Usernames are stored lowercase."""
        return normalize_username(v)


class ProfileUpdate(BaseModel):
    """Request body for PUT /users/me (identity comes from the auth header)."""

    username: str = Field(min_length=1)
    name: str = Field(min_length=1)
    bio: str = ""
    image: str = ""
    path: str = "/onboarding"

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        """Reject blank usernames before they reach the service."""
        return normalize_username(v)


class UserSearchQuery(BaseModel):
    """Parameters for the paginated user listing."""

    user_id: str  # Requesting user's external id, excluded from results
    search_string: str = ""
    page_number: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)
    sort_by: Literal["asc", "desc"] = "desc"


class UserListItem(BaseModel):
    """Schema for user list items."""

    internal_id: int
    id: str
    username: str
    name: str
    image: str
    bio: str | None
    created_at: datetime


class UserListResponse(BaseModel):
    """Schema for a page of users."""

    users: list[UserListItem]
    has_next: bool  # True if more users match beyond this page
