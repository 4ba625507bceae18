import copy
import sys
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure the `servicefinder` package is importable when running pytest from the repository root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from servicefinder.cache.details import DetailCache  # noqa: E402
from servicefinder.cache.search import SearchCache  # noqa: E402

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

_BASIC_FIELDS = (
    "name",
    "formatted_address",
    "rating",
    "user_ratings_total",
    "lat",
    "lng",
    "business_status",
    "types",
    "open_now",
    "basic_info_updated_at",
)
_DETAIL_FIELDS = (
    "formatted_phone_number",
    "international_phone_number",
    "website",
    "url",
    "price_level",
    "opening_hours_weekday_text",
    "opening_hours_periods",
    "details_updated_at",
)
_ALL_COLUMNS = ("place_id", "photos", "plus_code_global", "plus_code_compound") + _BASIC_FIELDS + _DETAIL_FIELDS


class MutableClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class InMemoryEntityStore:
    """Mirrors the SQL semantics of EntityStore over plain dictionaries."""

    def __init__(self):
        self.businesses = {}
        self.reviews = []
        self.search_cache = {}
        self.search_results = []

    def snapshot(self):
        return copy.deepcopy((self.businesses, self.reviews, self.search_cache, self.search_results))

    def restore(self, state):
        self.businesses, self.reviews, self.search_cache, self.search_results = copy.deepcopy(state)

    def upsert_business(self, cur, row):
        existing = self.businesses.get(row["place_id"])
        if existing is None:
            self.businesses[row["place_id"]] = {**dict.fromkeys(_ALL_COLUMNS), **row}
            return
        for field in _BASIC_FIELDS:
            existing[field] = row[field]
        for field in ("photos", "plus_code_global", "plus_code_compound"):
            if row[field] is not None:
                existing[field] = row[field]

    def upsert_business_details(self, cur, row):
        existing = self.businesses.get(row["place_id"])
        if existing is None:
            self.businesses[row["place_id"]] = {
                **dict.fromkeys(_ALL_COLUMNS),
                **row,
                "basic_info_updated_at": row["details_updated_at"],
            }
            return
        for field in _DETAIL_FIELDS:
            existing[field] = row[field]
        for field in ("open_now", "photos"):
            if row[field] is not None:
                existing[field] = row[field]

    def replace_search_ranks(self, cur, search_key, place_ids):
        self.search_results = [r for r in self.search_results if r["search_key"] != search_key]
        for rank, place_id in enumerate(place_ids, start=1):
            if place_id not in self.businesses:
                raise RuntimeError(f"foreign key violation for {place_id}")
            self.search_results.append({"search_key": search_key, "place_id": place_id, "rank": rank})

    def upsert_search_meta(self, cur, meta):
        existing = self.search_cache.get(meta["search_key"])
        values = {
            "search_key": meta["search_key"],
            "category": meta["category"],
            "location": meta["location"],
            "metro": meta["metro"],
            "result_count": meta["result_count"],
            "last_fetched_at": meta["fetched_at"],
            "last_queried_at": meta["fetched_at"],
        }
        if existing is None:
            self.search_cache[meta["search_key"]] = {**values, "total_queries": 1}
        else:
            existing.update(values)
            existing["total_queries"] += 1

    def touch_search_meta(self, cur, search_key, queried_at):
        existing = self.search_cache.get(search_key)
        if existing is not None:
            existing["last_queried_at"] = queried_at
            existing["total_queries"] += 1

    def fetch_search_meta(self, cur, search_key):
        meta = self.search_cache.get(search_key)
        return dict(meta) if meta else None

    def fetch_ranked_businesses(self, cur, search_key):
        ranks = sorted((r for r in self.search_results if r["search_key"] == search_key), key=lambda r: r["rank"])
        return [dict(self.businesses[r["place_id"]], rank=r["rank"]) for r in ranks]

    def fetch_business(self, cur, place_id):
        row = self.businesses.get(place_id)
        return dict(row) if row else None

    def fetch_reviews(self, cur, place_id):
        return [dict(r) for r in self.reviews if r["place_id"] == place_id]

    def replace_reviews(self, cur, place_id, reviews):
        self.reviews = [r for r in self.reviews if r["place_id"] != place_id]
        self.reviews.extend(dict(r, place_id=place_id) for r in reviews)

    def delete_searches_fetched_before(self, cur, cutoff):
        keys = [k for k, meta in self.search_cache.items() if meta["last_fetched_at"] < cutoff]
        self.search_results = [r for r in self.search_results if r["search_key"] not in keys]
        for key in keys:
            del self.search_cache[key]
        return keys

    def ranks_for(self, search_key):
        return sorted(
            ((r["rank"], r["place_id"]) for r in self.search_results if r["search_key"] == search_key),
        )


class FakeStorage:
    """Stands in for StorageClient; a failed transaction restores the last committed state."""

    def __init__(self, store, available=True, atomic_writes=True):
        self.store = store
        self.available = available
        self.atomic_writes = atomic_writes
        self.transactions = 0
        self._committed = None

    @contextmanager
    def transaction(self):
        self.transactions += 1
        self._committed = self.store.snapshot()
        try:
            yield object()
        except Exception:
            self.store.restore(self._committed)
            raise

    def checkpoint(self, cur):
        if not self.atomic_writes:
            self._committed = self.store.snapshot()


@pytest.fixture
def clock():
    return MutableClock(T0)


@pytest.fixture
def store():
    return InMemoryEntityStore()


@pytest.fixture
def storage(store):
    return FakeStorage(store)


@pytest.fixture
def search_cache(storage, store, clock):
    return SearchCache(storage, store, clock=clock)


@pytest.fixture
def detail_cache(storage, store, clock):
    return DetailCache(storage, store, clock=clock)


@pytest.fixture
def make_place():
    def factory(place_id, name=None, **extra):
        place = {
            "place_id": place_id,
            "name": name or f"Company {place_id}",
            "formatted_address": f"{place_id} Main St, Katy, TX",
            "rating": 4.5,
            "user_ratings_total": 10,
            "geometry": {"location": {"lat": 29.78, "lng": -95.82}},
            "business_status": "OPERATIONAL",
            "types": ["plumber", "point_of_interest"],
            "opening_hours": {"open_now": True},
            "photos": [{"photo_reference": f"ref-{place_id}", "height": 300, "width": 400}],
        }
        place.update(extra)
        return place

    return factory
