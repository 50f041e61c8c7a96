"""Named, TTL-bound mutual exclusion leases.

A lease is held for at most ``ttl`` seconds; once it elapses another waiter
may take the name over even if the holder never released it, so a crashed
sync cannot block a pair forever.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from uuid import uuid4

from redis import Redis
from redis.exceptions import LockError

from candlesync.core.exceptions import LockTimeoutError
from candlesync.core.logging import get_logger

log = get_logger(__name__)


class LockManager(ABC):
    """Hands out named leases."""

    @abstractmethod
    def acquire(self, name: str, ttl: float, wait: float) -> object | None:
        """Block up to ``wait`` seconds; return a release token or None on timeout."""

    @abstractmethod
    def release(self, name: str, token: object) -> None:
        """Give the lease back if ``token`` still owns it."""

    @contextmanager
    def hold(self, name: str, ttl: float, wait: float) -> Iterator[None]:
        """Run the body under the lease; raises :class:`LockTimeoutError` if not acquired."""
        token = self.acquire(name, ttl, wait)
        if token is None:
            raise LockTimeoutError(name, wait)
        try:
            yield
        finally:
            self.release(name, token)


@dataclass(slots=True)
class _Lease:
    token: str
    expires_at: float


class InMemoryLockManager(LockManager):
    """Process-local leases; enough when every scheduler shares one interpreter."""

    def __init__(self) -> None:
        self._leases: dict[str, _Lease] = {}
        self._cond = threading.Condition(threading.Lock())

    def acquire(self, name: str, ttl: float, wait: float) -> str | None:
        deadline = time.monotonic() + max(wait, 0.0)
        with self._cond:
            while True:
                now = time.monotonic()
                lease = self._leases.get(name)
                if lease is None or lease.expires_at <= now:
                    token = uuid4().hex
                    self._leases[name] = _Lease(token=token, expires_at=now + ttl)
                    return token
                remaining = deadline - now
                if remaining <= 0:
                    return None
                self._cond.wait(timeout=min(remaining, lease.expires_at - now))

    def release(self, name: str, token: object) -> None:
        with self._cond:
            lease = self._leases.get(name)
            if lease is not None and lease.token == token:
                del self._leases[name]
                self._cond.notify_all()

    def is_locked(self, name: str) -> bool:
        with self._cond:
            lease = self._leases.get(name)
            return lease is not None and lease.expires_at > time.monotonic()


class RedisLockManager(LockManager):
    """Leases shared by every process talking to the same Redis."""

    def __init__(self, client: Redis | None = None, *, url: str = "redis://localhost:6379/0") -> None:
        self._redis = client if client is not None else Redis.from_url(url)

    def acquire(self, name: str, ttl: float, wait: float) -> object | None:
        lock = self._redis.lock(name, timeout=ttl, blocking_timeout=wait)
        if not lock.acquire(blocking=True):
            return None
        return lock

    def release(self, name: str, token: object) -> None:
        try:
            token.release()  # type: ignore[attr-defined]
        except LockError as exc:
            # Lease already expired and possibly taken over; nothing left to release.
            log.warning("sync lock expired before release", lock_name=name, error=str(exc))


__all__ = ["InMemoryLockManager", "LockManager", "RedisLockManager"]
