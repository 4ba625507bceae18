"""Cache of ordered text-search results keyed by category and location."""

import logging
from datetime import timedelta
from operator import itemgetter
from typing import Any, Dict, List, Optional, Sequence

from servicefinder.cache.base import CacheTier, Clock, best_effort
from servicefinder.cache.staleness import SEARCH_TTL, is_stale, utcnow
from servicefinder.core.db import StorageClient
from servicefinder.core.store import EntityStore
from servicefinder.etl import transform
from servicefinder.models import CachedSearch

logger = logging.getLogger(__name__)


def build_search_key(category: str, location: str) -> str:
    """Locations differing only by case or surrounding whitespace share a key."""
    return f"{category}:{location.strip().lower()}"


def unique_places(places: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Drop results without a place_id and repeats of an already seen place_id."""
    kept: List[Dict[str, Any]] = []
    seen = set()
    for place in places:
        place_id = place.get("place_id")
        if not place_id or place_id in seen:
            logger.debug("Skipping result without a unique place_id: %s", place.get("name"))
            continue
        seen.add(place_id)
        kept.append(place)
    return kept


class SearchCache(CacheTier):
    def __init__(
        self,
        storage: StorageClient,
        store: Optional[EntityStore] = None,
        *,
        ttl: timedelta = SEARCH_TTL,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(storage, store, ttl=ttl, clock=clock)

    @best_effort(True)
    def should_refresh(self, search_key: str) -> bool:
        with self.storage.transaction() as cur:
            meta = self.store.fetch_search_meta(cur, search_key)
        if not meta:
            return True
        return is_stale(meta.get("last_fetched_at"), self.ttl, self._clock())

    @best_effort(None)
    def get(self, search_key: str) -> Optional[CachedSearch]:
        """Return the cached ordering for ``search_key``, or None on a miss.

        An empty stored list is reported as a miss because it cannot be told apart from
        a save that failed halfway.
        """
        self._record_query(search_key)

        with self.storage.transaction() as cur:
            rows = self.store.fetch_ranked_businesses(cur, search_key)
            if not rows:
                return None
            meta = self.store.fetch_search_meta(cur, search_key) or {}

        try:
            results = [transform.to_place(row) for row in rows]
        except ValueError as exc:
            logger.warning("Discarding malformed cached results for %s: %s", search_key, exc)
            return None

        return CachedSearch(
            results=results,
            metro=meta.get("metro"),
            count=len(results),
            cached_at=meta.get("last_fetched_at"),
        )

    def _record_query(self, search_key: str) -> None:
        try:
            with self.storage.transaction() as cur:
                self.store.touch_search_meta(cur, search_key, self._clock())
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not record query for %s: %s", search_key, exc)

    @best_effort(False)
    def save(
        self,
        search_key: str,
        *,
        category: str,
        location: str,
        metro: Optional[str],
        places: Sequence[Dict[str, Any]],
    ) -> bool:
        """Persist a fresh result list, replacing the previous ordering for the key."""
        now = self._clock()
        rows = [transform.to_business_row(place, now) for place in unique_places(places)]

        with self.storage.transaction() as cur:
            # fixed lock order across concurrent saves
            for row in sorted(rows, key=itemgetter("place_id")):
                self.store.upsert_business(cur, row)
            self.storage.checkpoint(cur)
            self.store.replace_search_ranks(cur, search_key, [row["place_id"] for row in rows])
            self.storage.checkpoint(cur)
            self.store.upsert_search_meta(
                cur,
                {
                    "search_key": search_key,
                    "category": category,
                    "location": location,
                    "metro": metro,
                    "result_count": len(rows),
                    "fetched_at": now,
                },
            )

        logger.info("Saved %d results for %s", len(rows), search_key)
        return True
