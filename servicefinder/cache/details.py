"""Cache of place details and reviews keyed by place_id."""

import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from servicefinder.cache.base import CacheTier, Clock, best_effort
from servicefinder.cache.staleness import DETAILS_TTL, is_stale, utcnow
from servicefinder.core.db import StorageClient
from servicefinder.core.store import EntityStore
from servicefinder.etl import transform

logger = logging.getLogger(__name__)


class DetailCache(CacheTier):
    def __init__(
        self,
        storage: StorageClient,
        store: Optional[EntityStore] = None,
        *,
        ttl: timedelta = DETAILS_TTL,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(storage, store, ttl=ttl, clock=clock)

    @best_effort(None)
    def get(self, place_id: str) -> Optional[Dict[str, Any]]:
        """Return fresh cached details merged with their reviews, or None."""
        with self.storage.transaction() as cur:
            row = self.store.fetch_business(cur, place_id)
            if row is None or row.get("details_updated_at") is None:
                return None
            if is_stale(row["details_updated_at"], self.ttl, self._clock()):
                return None
            reviews = self.store.fetch_reviews(cur, place_id)

        try:
            return transform.to_place_details(row, reviews)
        except ValueError as exc:
            logger.warning("Discarding malformed cached details for %s: %s", place_id, exc)
            return None

    @best_effort(False)
    def save(self, place_id: str, details: Dict[str, Any]) -> bool:
        """Store extended fields; a payload with reviews replaces the stored set."""
        now = self._clock()
        row = transform.to_details_row(dict(details, place_id=place_id), now)
        reviews = details.get("reviews") or []

        with self.storage.transaction() as cur:
            self.store.upsert_business_details(cur, row)
            if reviews:
                self.storage.checkpoint(cur)
                self.store.replace_reviews(cur, place_id, transform.to_review_rows(place_id, reviews))

        logger.info("Saved details for %s (%d reviews)", place_id, len(reviews))
        return True
