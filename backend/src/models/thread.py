"""Thread model - both top-level posts and replies."""
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, utc_now

if TYPE_CHECKING:
    from models.community import Community
    from models.user import User


class Thread(Base):
    """
    A post or a reply.

    A reply is linked to its parent twice: parent_id on the reply (a string, not
    a foreign key) and the reply's id in the parent's children array. Nothing
    keeps the two in sync; readers that need every reply must consult both.
    """

    __tablename__ = "threads"

    id: Mapped[int] = mapped_column(primary_key=True)
    text: Mapped[str] = mapped_column(Text)
    author_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True,
    )
    community_id: Mapped[int | None] = mapped_column(
        ForeignKey("communities.id", ondelete="SET NULL"), nullable=True,
    )
    parent_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    children: Mapped[list[int]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        index=True,
    )

    author: Mapped["User"] = relationship(back_populates="threads")
    community: Mapped["Community | None"] = relationship(back_populates="threads")
