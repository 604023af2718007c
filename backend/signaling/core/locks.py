"""Striped in-process locks used to serialize mutations of a single call."""
import threading
import time
import zlib
from contextlib import contextmanager
from typing import Callable, Hashable, List, TypeVar

from sqlalchemy.exc import OperationalError

from signaling.core.errors import LockContention, SignalingUnavailable
from signaling.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class StripedLocks:
    """
    A fixed pool of locks addressed by key.
    Two keys may share a stripe; that only costs some parallelism, never correctness.
    """

    def __init__(self, stripes: int = 64, timeout: float = 2.0):
        if stripes < 1:
            raise ValueError("stripes must be positive")
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(stripes)]
        self.timeout = timeout

    def _index(self, key: Hashable) -> int:
        # crc32 of the repr keeps stripe choice stable across processes (hash() is salted)
        return zlib.crc32(repr(key).encode("utf-8")) % len(self._locks)

    @contextmanager
    def hold(self, key: Hashable):
        lock = self._locks[self._index(key)]
        if not lock.acquire(timeout=self.timeout):
            raise LockContention(f"timed out waiting for lock {key!r}")
        try:
            yield
        finally:
            lock.release()


_CONTENTION_MARKERS = (
    "database is locked",
    "database table is locked",
    "could not serialize access",
    "deadlock detected",
    "lock timeout",
)


def is_contention_error(exc: OperationalError) -> bool:
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return any(marker in message for marker in _CONTENTION_MARKERS)


def run_with_contention_retry(
    operation: Callable[[], T],
    *,
    attempts: int,
    delay: float,
    label: str = "operation",
) -> T:
    """
    Run ``operation``, retrying only on resource contention.

    Lock timeouts and database lock/serialization failures are retried up to
    ``attempts`` times with a linear backoff; domain errors propagate at once.
    """
    last_error = None
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except (LockContention, OperationalError) as exc:
            if isinstance(exc, OperationalError) and not is_contention_error(exc):
                raise
            last_error = exc
            logger.warning("Contention on %s (attempt %d/%d): %s", label, attempt, attempts, exc)
            if attempt < attempts:
                time.sleep(delay * attempt)
    raise SignalingUnavailable(f"{label} could not complete, call is busy") from last_error
