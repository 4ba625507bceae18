"""Request-path orchestration: serve from cache when fresh, otherwise ask Google Places."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from servicefinder.cache.details import DetailCache
from servicefinder.cache.search import SearchCache, build_search_key, unique_places
from servicefinder.service.single_flight import SingleFlight
from servicefinder.vendors.google_places import GooglePlacesProvider, NotFoundError

logger = logging.getLogger(__name__)


def _isoformat(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


class LookupService:
    def __init__(
        self,
        provider: GooglePlacesProvider,
        search_cache: SearchCache,
        detail_cache: DetailCache,
        *,
        single_flight: bool = False,
    ) -> None:
        self.provider = provider
        self.search_cache = search_cache
        self.detail_cache = detail_cache
        self._flights: Optional[SingleFlight] = SingleFlight() if single_flight else None

    @property
    def cache_available(self) -> bool:
        return self.search_cache.storage.available

    def _run(self, key: str, fn):
        if self._flights is None:
            return fn()
        return self._flights.do(key, fn)

    def search(
        self,
        category: str,
        location: str,
        radius: Optional[float] = None,
        metro: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Return ``{"results": [...], "meta": {...}}`` for a category/location search."""
        self.provider.ensure_configured()
        search_key = build_search_key(category, location)

        if not self.search_cache.should_refresh(search_key):
            cached = self.search_cache.get(search_key)
            if cached:
                logger.info("Cache HIT for %s", search_key)
                return {
                    "results": cached.results,
                    "meta": {
                        "category": category,
                        "location": location,
                        "metro": cached.metro or metro,
                        "count": cached.count,
                        "cached": True,
                        "cached_at": _isoformat(cached.cached_at),
                    },
                }

        logger.info("Cache MISS for %s, fetching from Google Places", search_key)

        def fetch_and_save():
            places = unique_places(self.provider.search(category, location, radius))
            self.search_cache.save(search_key, category=category, location=location, metro=metro, places=places)
            return places

        results = self._run(f"search:{search_key}", fetch_and_save)
        return {
            "results": results,
            "meta": {
                "category": category,
                "location": location,
                "metro": metro,
                "count": len(results),
                "cached": False,
            },
        }

    def place_details(self, place_id: str) -> Dict[str, Any]:
        """Return details for ``place_id``; raise NotFoundError when Google has none."""
        self.provider.ensure_configured()

        cached = self.detail_cache.get(place_id)
        if cached:
            logger.info("Cache HIT for place details %s", place_id)
            cached_at = cached.pop("details_updated_at", None)
            return dict(cached, meta={"cached": True, "cached_at": _isoformat(cached_at)})

        logger.info("Cache MISS for place details %s, fetching from Google Places", place_id)

        def fetch_and_save():
            details = self.provider.get_details(place_id)
            if details is not None:
                self.detail_cache.save(place_id, details)
            return details

        details = self._run(f"place:{place_id}", fetch_and_save)
        if details is None:
            raise NotFoundError(f"No place found with ID: {place_id}")
        return dict(details, meta={"cached": False})

    def photo(self, photo_reference: str, max_width: int = 400) -> Tuple[bytes, str]:
        return self.provider.get_photo(photo_reference, max_width=max_width)
