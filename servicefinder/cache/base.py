"""Shared plumbing for the cache tiers."""

import functools
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from servicefinder.cache.staleness import utcnow
from servicefinder.core.db import StorageClient
from servicefinder.core.store import EntityStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def best_effort(fallback: Any):
    """Turn storage failures and a disabled store into ``fallback``.

    Cache reads degrade to a miss and writes to a skipped write; nothing raised by the
    storage path reaches the caller.
    """

    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, *args, **kwargs):
            if not self.storage.available:
                return fallback
            try:
                return method(self, *args, **kwargs)
            except Exception as exc:  # noqa: BLE001
                logger.warning("%s failed, continuing without cache: %s", method.__qualname__, exc)
                return fallback

        return wrapper

    return decorator


class CacheTier:
    """Base for components that read and write through the entity store."""

    def __init__(
        self,
        storage: StorageClient,
        store: Optional[EntityStore] = None,
        *,
        ttl: timedelta,
        clock: Clock = utcnow,
    ) -> None:
        self.storage = storage
        self.store = store or EntityStore()
        self.ttl = ttl
        self._clock = clock
