"""Freshness rules for cached search results and place details."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

logger = logging.getLogger(__name__)

SEARCH_TTL = timedelta(days=7)
DETAILS_TTL = timedelta(days=30)

Timestamp = Union[datetime, str]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: Timestamp) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        raise TypeError(f"unsupported timestamp type: {type(value).__name__}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def is_stale(last_refreshed: Optional[Timestamp], ttl: timedelta, now: Optional[datetime] = None) -> bool:
    """Return True when data refreshed at ``last_refreshed`` must be fetched again.

    Missing or unreadable timestamps count as stale.
    """
    if last_refreshed is None:
        return True
    try:
        refreshed = _as_aware(last_refreshed)
        current = _as_aware(now) if now is not None else utcnow()
        return current - refreshed >= ttl
    except (TypeError, ValueError) as exc:
        logger.warning("Unreadable refresh timestamp %r; treating as stale: %s", last_refreshed, exc)
        return True
