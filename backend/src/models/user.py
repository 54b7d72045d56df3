"""User model for storing onboarded profiles."""
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin
from models.community import community_members

if TYPE_CHECKING:
    from models.community import Community
    from models.thread import Thread


class User(Base, TimestampMixin):
    """User model - keyed internally by id, externally by the identity provider subject."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        comment="'sub' claim - unique identifier from the identity provider",
    )
    username: Mapped[str] = mapped_column(String(255), unique=True)
    name: Mapped[str] = mapped_column(String(255))
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    image: Mapped[str] = mapped_column(Text, default="")
    onboarded: Mapped[bool] = mapped_column(Boolean, default=False)

    communities: Mapped[list["Community"]] = relationship(
        secondary=community_members, back_populates="members",
    )
    threads: Mapped[list["Thread"]] = relationship(
        back_populates="author", order_by="Thread.created_at.desc()",
    )
