"""
Opaque cursors for keyset pagination over (created_at DESC, id DESC).
"""

import base64
import binascii
import json
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from sqlalchemy import and_, or_

from .database import to_utc
from .logger import get_logger


class Cursor:
    """Position of the last row of the previous page."""

    __slots__ = ("created_at", "id")

    def __init__(self, created_at: datetime, id: str):
        self.created_at = to_utc(created_at)
        self.id = id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cursor):
            return NotImplemented
        return (self.created_at, self.id) == (other.created_at, other.id)

    def __hash__(self) -> int:
        return hash((self.created_at, self.id))

    def __repr__(self) -> str:
        return f"Cursor(created_at={self.created_at.isoformat()!r}, id={self.id!r})"

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Cursor":
        return cls(created_at=row["created_at"], id=row["id"])

    def encode(self) -> str:
        payload = json.dumps(
            {"created_at": self.created_at.isoformat(), "id": self.id},
            separators=(",", ":"),
        )
        return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")

    def predicate(self, created_col, id_col):
        """Rows strictly after this cursor in (created_at DESC, id DESC) order."""
        return or_(
            created_col < self.created_at,
            and_(created_col == self.created_at, id_col < self.id),
        )


def decode_cursor(token: Optional[str]) -> Optional[Cursor]:
    """
    Parse an opaque cursor token.

    Returns None for a missing or malformed token, which callers treat as a
    request for the first page.
    """
    if token is None or not token.strip():
        return None

    token = token.strip()
    try:
        padded = token + "=" * (-len(token) % 4)
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        data = json.loads(raw.decode("utf-8"))
        created_at = datetime.fromisoformat(data["created_at"])
        row_id = data["id"]
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError) as e:
        logger = get_logger()
        logger.record_malformed_cursor()
        logger.warning("Malformed cursor, restarting from first page", cursor=token, error=str(e))
        return None

    if not isinstance(row_id, str) or not row_id:
        logger = get_logger()
        logger.record_malformed_cursor()
        logger.warning("Malformed cursor id, restarting from first page", cursor=token)
        return None

    return Cursor(created_at=created_at, id=row_id)


def coerce_cursor(cursor: Union[Cursor, str, None]) -> Optional[Cursor]:
    if cursor is None or isinstance(cursor, Cursor):
        return cursor
    return decode_cursor(cursor)
