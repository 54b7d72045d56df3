"""Community model and the community membership association table."""
from typing import TYPE_CHECKING

from sqlalchemy import Column, ForeignKey, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from models.thread import Thread
    from models.user import User


community_members = Table(
    "community_members",
    Base.metadata,
    Column("community_id", ForeignKey("communities.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Community(Base, TimestampMixin):
    """A group of users. Membership is shared (many-to-many with User)."""

    __tablename__ = "communities"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        comment="Organisation id issued by the identity provider",
    )
    username: Mapped[str] = mapped_column(String(255), unique=True)
    name: Mapped[str] = mapped_column(String(255))
    image: Mapped[str] = mapped_column(Text, default="")
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)

    members: Mapped[list["User"]] = relationship(
        secondary=community_members, back_populates="communities",
    )
    threads: Mapped[list["Thread"]] = relationship(back_populates="community")
