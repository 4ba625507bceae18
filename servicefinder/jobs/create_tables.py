"""Create the cache tables in the configured database."""

import logging

from servicefinder.core.config import get_settings
from servicefinder.core.db import StorageClient
from servicefinder.core.schema import ensure_tables_exist

logger = logging.getLogger(__name__)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    storage = StorageClient.from_settings(get_settings())
    if not storage.available:
        logger.error("DATABASE_URL is required to create tables")
        raise SystemExit(2)
    try:
        ensure_tables_exist(storage)
    finally:
        storage.close()


if __name__ == "__main__":
    main()
