"""Keyset pagination over ``(created_at, id)``.

Repositories fetch ``limit + 1`` rows ordered newest first; the extra row only
tells us whether another page exists. The cursor handed to clients is the
position of the last row on the page, base64 encoded so it stays opaque.
"""
import base64
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import and_, or_

from marketplace.errors import InvalidStateError


@dataclass(frozen=True)
class Cursor:
    created_at: datetime
    id: int

    def encode(self) -> str:
        raw = f"{self.created_at.isoformat()}|{self.id}"
        return base64.urlsafe_b64encode(raw.encode()).decode()

    @classmethod
    def decode(cls, value: str) -> "Cursor":
        try:
            raw = base64.urlsafe_b64decode(value.encode()).decode()
            created_at, id_ = raw.rsplit("|", 1)
            return cls(created_at=datetime.fromisoformat(created_at), id=int(id_))
        except (ValueError, UnicodeDecodeError):
            raise InvalidStateError("Invalid cursor")


@dataclass
class Page:
    items: list[Any]
    has_more: bool
    next_cursor: str | None = None


def after_cursor(created_at_col, id_col, cursor: Cursor | None):
    """WHERE clause selecting rows strictly older than ``cursor``."""
    if cursor is None:
        return None
    return or_(
        created_at_col < cursor.created_at,
        and_(created_at_col == cursor.created_at, id_col < cursor.id),
    )


def extract_pagination(rows: Sequence[Any], limit: int) -> Page:
    has_more = len(rows) > limit
    items = list(rows[:limit]) if has_more else list(rows)
    next_cursor = None
    if has_more and items:
        last = items[-1]
        next_cursor = Cursor(created_at=last.created_at, id=last.id).encode()
    return Page(items=items, has_more=has_more, next_cursor=next_cursor)
