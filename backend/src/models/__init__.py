"""SQLAlchemy models."""
from models.base import Base, TimestampMixin
from models.community import Community, community_members
from models.thread import Thread
from models.user import User

__all__ = ["Base", "Community", "Thread", "TimestampMixin", "User", "community_members"]
