"""Shared helpers for service-layer queries."""
from sqlalchemy import and_, or_
from sqlalchemy.sql.elements import ColumnElement

from models.thread import Thread


def escape_ilike(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally (escape char: backslash)."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def is_top_level() -> ColumnElement[bool]:
    """Threads with no parent: parent_id is null or the empty string."""
    return or_(Thread.parent_id.is_(None), Thread.parent_id == "")


def is_reply() -> ColumnElement[bool]:
    """Threads with a parent: parent_id is set and not empty."""
    return and_(Thread.parent_id.is_not(None), Thread.parent_id != "")


def normalize_parent_id(parent_id: str | None) -> str | None:
    """Empty parent ids are reported as None."""
    return parent_id or None
