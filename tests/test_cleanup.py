from datetime import timedelta

from servicefinder.cache.cleanup import SearchCacheCleaner
from servicefinder.core.db import CacheError


def _save(cache, key, places):
    category, location = key.split(":")
    cache.save(key, category=category, location=location, metro=None, places=places)


def test_evicts_only_expired_keys(search_cache, storage, store, clock, make_place):
    _save(search_cache, "Plumbing:katy", [make_place("A"), make_place("B")])
    clock.advance(days=5)
    _save(search_cache, "Roofing:austin", [make_place("C")])
    clock.advance(days=3)

    cleaner = SearchCacheCleaner(storage, store, clock=clock)
    evicted = cleaner.evict_older_than()

    assert evicted == 1
    assert "Plumbing:katy" not in store.search_cache
    assert store.ranks_for("Plumbing:katy") == []
    assert store.ranks_for("Roofing:austin") == [(1, "C")]
    # entities are never evicted
    assert sorted(store.businesses) == ["A", "B", "C"]


def test_explicit_cutoff(search_cache, storage, store, clock, make_place):
    _save(search_cache, "Plumbing:katy", [make_place("A")])
    clock.advance(hours=1)

    cleaner = SearchCacheCleaner(storage, store, clock=clock)

    assert cleaner.evict_older_than(clock.now - timedelta(hours=2)) == 0
    assert cleaner.evict_older_than(clock.now) == 1


def test_nothing_to_evict(storage, store, clock):
    assert SearchCacheCleaner(storage, store, clock=clock).evict_older_than() == 0


def test_storage_error_returns_zero(search_cache, storage, store, clock, make_place, monkeypatch):
    _save(search_cache, "Plumbing:katy", [make_place("A")])
    clock.advance(days=8)

    def boom(*args, **kwargs):
        raise CacheError("lock timeout")

    monkeypatch.setattr(store, "delete_searches_fetched_before", boom)

    assert SearchCacheCleaner(storage, store, clock=clock).evict_older_than() == 0
    assert "Plumbing:katy" in store.search_cache


def test_unavailable_storage_returns_zero(storage, store, clock):
    storage.available = False

    assert SearchCacheCleaner(storage, store, clock=clock).evict_older_than() == 0
    assert storage.transactions == 0
