"""SQL operations over the cache tables.

Every method takes an open cursor so callers decide the transaction boundaries.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

_UPSERT_BUSINESS = """
INSERT INTO businesses (
    place_id,
    name,
    formatted_address,
    rating,
    user_ratings_total,
    lat,
    lng,
    business_status,
    types,
    open_now,
    photos,
    plus_code_global,
    plus_code_compound,
    basic_info_updated_at
) VALUES (
    %(place_id)s,
    %(name)s,
    %(formatted_address)s,
    %(rating)s,
    %(user_ratings_total)s,
    %(lat)s,
    %(lng)s,
    %(business_status)s,
    %(types)s,
    %(open_now)s,
    %(photos)s,
    %(plus_code_global)s,
    %(plus_code_compound)s,
    %(basic_info_updated_at)s
)
ON CONFLICT (place_id) DO UPDATE SET
    name = EXCLUDED.name,
    formatted_address = EXCLUDED.formatted_address,
    rating = EXCLUDED.rating,
    user_ratings_total = EXCLUDED.user_ratings_total,
    lat = EXCLUDED.lat,
    lng = EXCLUDED.lng,
    business_status = EXCLUDED.business_status,
    types = EXCLUDED.types,
    open_now = EXCLUDED.open_now,
    photos = COALESCE(EXCLUDED.photos, businesses.photos),
    plus_code_global = COALESCE(EXCLUDED.plus_code_global, businesses.plus_code_global),
    plus_code_compound = COALESCE(EXCLUDED.plus_code_compound, businesses.plus_code_compound),
    basic_info_updated_at = EXCLUDED.basic_info_updated_at;
"""

_UPSERT_BUSINESS_DETAILS = """
INSERT INTO businesses (
    place_id,
    name,
    formatted_address,
    rating,
    user_ratings_total,
    lat,
    lng,
    business_status,
    types,
    open_now,
    photos,
    plus_code_global,
    plus_code_compound,
    formatted_phone_number,
    international_phone_number,
    website,
    url,
    price_level,
    opening_hours_weekday_text,
    opening_hours_periods,
    basic_info_updated_at,
    details_updated_at
) VALUES (
    %(place_id)s,
    %(name)s,
    %(formatted_address)s,
    %(rating)s,
    %(user_ratings_total)s,
    %(lat)s,
    %(lng)s,
    %(business_status)s,
    %(types)s,
    %(open_now)s,
    %(photos)s,
    %(plus_code_global)s,
    %(plus_code_compound)s,
    %(formatted_phone_number)s,
    %(international_phone_number)s,
    %(website)s,
    %(url)s,
    %(price_level)s,
    %(opening_hours_weekday_text)s,
    %(opening_hours_periods)s,
    %(details_updated_at)s,
    %(details_updated_at)s
)
ON CONFLICT (place_id) DO UPDATE SET
    formatted_phone_number = EXCLUDED.formatted_phone_number,
    international_phone_number = EXCLUDED.international_phone_number,
    website = EXCLUDED.website,
    url = EXCLUDED.url,
    price_level = EXCLUDED.price_level,
    opening_hours_weekday_text = EXCLUDED.opening_hours_weekday_text,
    opening_hours_periods = EXCLUDED.opening_hours_periods,
    open_now = COALESCE(EXCLUDED.open_now, businesses.open_now),
    photos = COALESCE(EXCLUDED.photos, businesses.photos),
    details_updated_at = EXCLUDED.details_updated_at;
"""

_DELETE_RANKS = "DELETE FROM search_results WHERE search_key = %(search_key)s;"

_INSERT_RANK = """
INSERT INTO search_results (search_key, place_id, rank)
VALUES (%(search_key)s, %(place_id)s, %(rank)s);
"""

_UPSERT_SEARCH_META = """
INSERT INTO search_cache (
    search_key,
    category,
    location,
    metro,
    result_count,
    last_fetched_at,
    last_queried_at,
    total_queries
) VALUES (
    %(search_key)s,
    %(category)s,
    %(location)s,
    %(metro)s,
    %(result_count)s,
    %(fetched_at)s,
    %(fetched_at)s,
    1
)
ON CONFLICT (search_key) DO UPDATE SET
    category = EXCLUDED.category,
    location = EXCLUDED.location,
    metro = EXCLUDED.metro,
    result_count = EXCLUDED.result_count,
    last_fetched_at = EXCLUDED.last_fetched_at,
    last_queried_at = EXCLUDED.last_queried_at,
    total_queries = search_cache.total_queries + 1;
"""

_TOUCH_SEARCH_META = """
UPDATE search_cache
SET last_queried_at = %(queried_at)s,
    total_queries = total_queries + 1
WHERE search_key = %(search_key)s;
"""

_SELECT_SEARCH_META = """
SELECT search_key, category, location, metro, result_count,
       last_fetched_at, last_queried_at, total_queries
FROM search_cache
WHERE search_key = %(search_key)s;
"""

_SELECT_RANKED_BUSINESSES = """
SELECT r.rank, b.*
FROM search_results r
JOIN businesses b ON b.place_id = r.place_id
WHERE r.search_key = %(search_key)s
ORDER BY r.rank ASC;
"""

_SELECT_BUSINESS = "SELECT * FROM businesses WHERE place_id = %(place_id)s;"

_SELECT_REVIEWS = """
SELECT author_name, author_url, language, profile_photo_url, rating, text, time,
       relative_time_description
FROM reviews
WHERE place_id = %(place_id)s
ORDER BY id ASC;
"""

_DELETE_REVIEWS = "DELETE FROM reviews WHERE place_id = %(place_id)s;"

_INSERT_REVIEW = """
INSERT INTO reviews (
    place_id,
    author_name,
    author_url,
    language,
    profile_photo_url,
    rating,
    text,
    time,
    relative_time_description
) VALUES (
    %(place_id)s,
    %(author_name)s,
    %(author_url)s,
    %(language)s,
    %(profile_photo_url)s,
    %(rating)s,
    %(text)s,
    %(time)s,
    %(relative_time_description)s
);
"""

_SELECT_EXPIRED_KEYS = "SELECT search_key FROM search_cache WHERE last_fetched_at < %(cutoff)s;"

_DELETE_RANKS_FOR_KEYS = "DELETE FROM search_results WHERE search_key = ANY(%(search_keys)s);"

_DELETE_META_FOR_KEYS = "DELETE FROM search_cache WHERE search_key = ANY(%(search_keys)s);"


class EntityStore:
    """Persistence for businesses, reviews, search metadata and search ranks."""

    def upsert_business(self, cur, row: Dict[str, Any]) -> None:
        """Insert or refresh the basic fields of a business."""
        cur.execute(_UPSERT_BUSINESS, row)

    def upsert_business_details(self, cur, row: Dict[str, Any]) -> None:
        """Insert a business or refresh only its extended fields."""
        cur.execute(_UPSERT_BUSINESS_DETAILS, row)

    def replace_search_ranks(self, cur, search_key: str, place_ids: Sequence[str]) -> None:
        """Drop every rank for the key, then write ranks 1..N in the given order."""
        cur.execute(_DELETE_RANKS, {"search_key": search_key})
        if not place_ids:
            return
        cur.executemany(
            _INSERT_RANK,
            [
                {"search_key": search_key, "place_id": place_id, "rank": rank}
                for rank, place_id in enumerate(place_ids, start=1)
            ],
        )

    def upsert_search_meta(self, cur, meta: Dict[str, Any]) -> None:
        cur.execute(_UPSERT_SEARCH_META, meta)

    def touch_search_meta(self, cur, search_key: str, queried_at: datetime) -> None:
        cur.execute(_TOUCH_SEARCH_META, {"search_key": search_key, "queried_at": queried_at})

    def fetch_search_meta(self, cur, search_key: str) -> Optional[Dict[str, Any]]:
        cur.execute(_SELECT_SEARCH_META, {"search_key": search_key})
        return cur.fetchone()

    def fetch_ranked_businesses(self, cur, search_key: str) -> List[Dict[str, Any]]:
        cur.execute(_SELECT_RANKED_BUSINESSES, {"search_key": search_key})
        return list(cur.fetchall())

    def fetch_business(self, cur, place_id: str) -> Optional[Dict[str, Any]]:
        cur.execute(_SELECT_BUSINESS, {"place_id": place_id})
        return cur.fetchone()

    def fetch_reviews(self, cur, place_id: str) -> List[Dict[str, Any]]:
        cur.execute(_SELECT_REVIEWS, {"place_id": place_id})
        return list(cur.fetchall())

    def replace_reviews(self, cur, place_id: str, reviews: Sequence[Dict[str, Any]]) -> None:
        """Delete the whole review set of a business and insert the new one."""
        cur.execute(_DELETE_REVIEWS, {"place_id": place_id})
        if reviews:
            cur.executemany(_INSERT_REVIEW, [dict(review, place_id=place_id) for review in reviews])

    def delete_searches_fetched_before(self, cur, cutoff: datetime) -> List[str]:
        """Remove ranks and metadata of searches last fetched before ``cutoff``."""
        cur.execute(_SELECT_EXPIRED_KEYS, {"cutoff": cutoff})
        search_keys = [row["search_key"] for row in cur.fetchall()]
        if not search_keys:
            return []
        cur.execute(_DELETE_RANKS_FOR_KEYS, {"search_keys": search_keys})
        cur.execute(_DELETE_META_FOR_KEYS, {"search_keys": search_keys})
        logger.debug("Deleted %d expired search keys", len(search_keys))
        return search_keys
