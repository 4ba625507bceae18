"""CLI job that evicts expired search results from the cache."""

import argparse
import logging
from datetime import timedelta
from typing import Optional

from servicefinder.cache.cleanup import SearchCacheCleaner
from servicefinder.core.config import get_settings
from servicefinder.core.db import StorageClient

logger = logging.getLogger(__name__)


def run_cleanup_job(*, days: int, storage: Optional[StorageClient] = None) -> int:
    """Evict searches fetched more than ``days`` days ago and return how many were removed."""
    if days < 1:
        raise ValueError("days must be at least 1")

    storage = storage or StorageClient.from_settings(get_settings())
    if not storage.available:
        raise RuntimeError("DATABASE_URL is required for cache cleanup")

    try:
        evicted = SearchCacheCleaner(storage, ttl=timedelta(days=days)).evict_older_than()
    finally:
        storage.close()

    logger.info("Completed cleanup: evicted=%d ttl_days=%d", evicted, days)
    return evicted


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Evict expired search cache entries")
    parser.add_argument(
        "--days",
        dest="days",
        type=int,
        default=get_settings().search_ttl_days,
        help="Evict searches last fetched more than this many days ago",
    )
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args()

    try:
        run_cleanup_job(days=args.days)
    except RuntimeError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc


if __name__ == "__main__":
    main()
