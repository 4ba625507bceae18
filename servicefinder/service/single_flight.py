"""Per-key de-duplication of concurrent calls."""

import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)


class SingleFlight:
    """Concurrent ``do`` calls for the same key share the first caller's result."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: Dict[str, Future] = {}

    def do(self, key: str, fn: Callable[[], Any]) -> Any:
        with self._lock:
            future = self._calls.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._calls[key] = future

        if not leader:
            logger.debug("Joining in-flight call for %s", key)
            return future.result()

        try:
            result = fn()
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._lock:
                self._calls.pop(key, None)
