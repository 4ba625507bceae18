"""DDL for the cache tables."""

import logging

from servicefinder.core.db import StorageClient

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS businesses (
    place_id TEXT PRIMARY KEY,
    name TEXT,
    formatted_address TEXT,
    rating DOUBLE PRECISION,
    user_ratings_total INTEGER,
    lat DOUBLE PRECISION,
    lng DOUBLE PRECISION,
    business_status TEXT,
    types TEXT[],
    open_now BOOLEAN,
    photos TEXT,
    plus_code_global TEXT,
    plus_code_compound TEXT,
    formatted_phone_number TEXT,
    international_phone_number TEXT,
    website TEXT,
    url TEXT,
    price_level SMALLINT,
    opening_hours_weekday_text TEXT[],
    opening_hours_periods TEXT,
    basic_info_updated_at TIMESTAMPTZ,
    details_updated_at TIMESTAMPTZ
);

CREATE TABLE IF NOT EXISTS reviews (
    id BIGSERIAL PRIMARY KEY,
    place_id TEXT NOT NULL REFERENCES businesses (place_id) ON DELETE CASCADE,
    author_name TEXT,
    author_url TEXT,
    language TEXT NOT NULL DEFAULT 'en',
    profile_photo_url TEXT,
    rating SMALLINT,
    text TEXT,
    time BIGINT,
    relative_time_description TEXT
);

CREATE INDEX IF NOT EXISTS idx_reviews_place_id ON reviews (place_id);

CREATE TABLE IF NOT EXISTS search_cache (
    search_key TEXT PRIMARY KEY,
    category TEXT NOT NULL,
    location TEXT NOT NULL,
    metro TEXT,
    result_count INTEGER NOT NULL DEFAULT 0,
    last_fetched_at TIMESTAMPTZ NOT NULL,
    last_queried_at TIMESTAMPTZ,
    total_queries INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_search_cache_last_fetched_at ON search_cache (last_fetched_at);

CREATE TABLE IF NOT EXISTS search_results (
    search_key TEXT NOT NULL,
    place_id TEXT NOT NULL REFERENCES businesses (place_id),
    rank INTEGER NOT NULL CHECK (rank >= 1),
    PRIMARY KEY (search_key, rank),
    UNIQUE (search_key, place_id)
);
"""


def ensure_tables_exist(storage: StorageClient) -> None:
    """Create the cache tables if they are missing."""
    with storage.transaction() as cur:
        cur.execute(SCHEMA_SQL)
    logger.info("Cache tables are in place")
