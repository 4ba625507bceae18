"""Database helpers for the cache layer."""

import logging
from contextlib import contextmanager
from typing import Optional

import psycopg2
from psycopg2 import extras, pool

from servicefinder.core.config import Settings

logger = logging.getLogger(__name__)


class CacheError(RuntimeError):
    """Raised when the cache database cannot complete an operation."""


class StorageClient:
    """Process-owned handle on the cache database.

    ``available`` is decided once, when the client is built. Cache components check it
    before touching the database, so a client without a pool turns every cache call into
    a miss or a skipped write.
    """

    def __init__(self, connection_pool: Optional[pool.AbstractConnectionPool] = None, *, atomic_writes: bool = True):
        self._pool = connection_pool
        self.atomic_writes = atomic_writes

    @property
    def available(self) -> bool:
        return self._pool is not None

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageClient":
        """Build the client, disabling caching when the database is unreachable."""
        if not settings.database_url:
            logger.warning("DATABASE_URL is not set; caching disabled.")
            return cls(None)
        try:
            pg_pool = pool.ThreadedConnectionPool(
                settings.db_pool_min,
                settings.db_pool_max,
                dsn=settings.database_url,
                connect_timeout=10,
            )
        except psycopg2.Error as exc:
            logger.warning("Could not open the cache database; caching disabled: %s", exc)
            return cls(None)
        logger.info("Database connection pool initialised")
        return cls(pg_pool, atomic_writes=settings.cache_atomic_writes)

    @contextmanager
    def connection(self):
        """Context manager yielding a pooled connection."""
        if self._pool is None:
            raise CacheError("cache database is not configured")
        conn = self._pool.getconn()
        try:
            yield conn
        finally:
            self._pool.putconn(conn)

    @contextmanager
    def transaction(self):
        """Yield a dict cursor; commit on success, roll back on any error."""
        with self.connection() as conn:
            try:
                with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                    yield cur
                conn.commit()
            except psycopg2.Error as exc:
                conn.rollback()
                raise CacheError(str(exc)) from exc
            except Exception:
                conn.rollback()
                raise

    def checkpoint(self, cur) -> None:
        """Commit the work done so far when saves are not atomic."""
        if not self.atomic_writes:
            cur.connection.commit()

    def close(self) -> None:
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
