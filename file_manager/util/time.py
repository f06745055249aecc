"""Time helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from dateutil import parser


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in the ledger tables."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = parser.parse(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
