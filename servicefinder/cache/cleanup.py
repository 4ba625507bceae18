"""Eviction of expired search orderings."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from servicefinder.cache.base import CacheTier, Clock, best_effort
from servicefinder.cache.staleness import SEARCH_TTL, utcnow
from servicefinder.core.db import StorageClient
from servicefinder.core.store import EntityStore

logger = logging.getLogger(__name__)


class SearchCacheCleaner(CacheTier):
    """Drops search metadata and ranks older than the search TTL.

    Businesses and reviews are left in place.
    """

    def __init__(
        self,
        storage: StorageClient,
        store: Optional[EntityStore] = None,
        *,
        ttl: timedelta = SEARCH_TTL,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(storage, store, ttl=ttl, clock=clock)

    @best_effort(0)
    def evict_older_than(self, cutoff: Optional[datetime] = None) -> int:
        if cutoff is None:
            cutoff = self._clock() - self.ttl
        with self.storage.transaction() as cur:
            evicted = self.store.delete_searches_fetched_before(cur, cutoff)
        logger.info("Evicted %d search cache entries fetched before %s", len(evicted), cutoff.isoformat())
        return len(evicted)
