"""Keyed mutual exclusion for request-scoped operations.

Orders and variants are locked by key (``order:<id>``, ``variant:<id>``) for
the whole of a command, including its unit-of-work commit, so that a stock
check and the write that follows it are atomic with respect to any other
request touching the same keys. Keys are always acquired in sorted order and
with a timeout; a request that cannot get its locks fails fast with
``ConflictingUpdate`` instead of waiting indefinitely.
"""

import threading
from contextlib import contextmanager

import structlog
from protean.utils.globals import current_domain

from commerce.exceptions import ConflictingUpdate
from commerce.utils import settings

logger = structlog.get_logger(__name__)


class KeyedLocks:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def _lock_for(self, key):
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, *keys, timeout=None):
        wait = settings.lock_timeout() if timeout is None else timeout
        acquired = []
        try:
            for key in sorted(set(keys)):
                lock = self._lock_for(key)
                if not lock.acquire(timeout=wait):
                    logger.warning("lock_timeout", key=key, timeout=wait)
                    raise ConflictingUpdate(f"{key} is being updated by another request, retry shortly")
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


_registry = KeyedLocks()


def order_key(order_id) -> str:
    return f"order:{order_id}"


def variant_key(variant_id) -> str:
    return f"variant:{variant_id}"


def cart_key(customer_id) -> str:
    return f"cart:{customer_id}"


def locked(*keys, timeout=None):
    return _registry.hold(*keys, timeout=timeout)


def dispatch(command, *keys):
    """Process ``command`` synchronously while holding ``keys``."""
    with locked(*keys):
        return current_domain.process(command, asynchronous=False)
