"""
Cache-backed locks for the phase sync.

``cache.add`` only writes when the key is absent, which makes it an atomic
test-and-set on Redis and on the local-memory backend alike. Each holder
stores a random token and only deletes the key while it still holds that
token, so an expired lock re-taken by someone else is never released by the
previous owner. The TTL bounds how long a crashed worker can block others;
a long-running holder pushes it out with ``extend``.
"""
from __future__ import annotations

import logging
import time
import uuid
from typing import Optional

from django.conf import settings
from django.core.cache import cache

from .exceptions import PropertyLocked, SyncAlreadyRunning

logger = logging.getLogger(__name__)


class CacheLock:
    key_prefix = "airtable_sync:lock:"
    error_class = SyncAlreadyRunning

    def __init__(self, name: str, ttl: int, wait: float = 0.0, poll_interval: float = 0.05) -> None:
        self.key = f"{self.key_prefix}{name}"
        self.ttl = ttl
        self.wait = wait
        self.poll_interval = poll_interval
        self.token: Optional[str] = None

    @property
    def held(self) -> bool:
        return self.token is not None

    def acquire(self) -> bool:
        token = uuid.uuid4().hex
        deadline = time.monotonic() + max(0.0, self.wait)
        while True:
            if cache.add(self.key, token, timeout=self.ttl):
                self.token = token
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(self.poll_interval)

    def extend(self) -> bool:
        """
        Push the expiry ``ttl`` seconds out while this holder still owns the key.
        Returns False once the lock has expired or been taken by someone else.
        """
        if self.token is None:
            return False
        if cache.get(self.key) != self.token:
            logger.warning("Lock %s no longer held, cannot extend", self.key)
            return False
        return bool(cache.touch(self.key, self.ttl))

    def release(self) -> None:
        if self.token is None:
            return
        current = cache.get(self.key)
        if current == self.token:
            cache.delete(self.key)
        else:
            logger.warning("Lock %s expired before release (ttl=%ss)", self.key, self.ttl)
        self.token = None

    def __enter__(self) -> "CacheLock":
        if not self.acquire():
            raise self.error_class(f"Could not acquire {self.key}")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class SyncLock(CacheLock):
    """Single-flight guard: at most one full phase sync at a time."""
    error_class = SyncAlreadyRunning

    def __init__(self, ttl: Optional[int] = None) -> None:
        super().__init__(
            "full-sync",
            ttl=ttl if ttl is not None else getattr(settings, "SYNC_LOCK_TTL", 60 * 30),
        )


class PropertyLock(CacheLock):
    """Serializes writes to one property between the full pass and the webhook path."""
    key_prefix = "airtable_sync:property-lock:"
    error_class = PropertyLocked

    def __init__(self, unique_id: str, ttl: Optional[int] = None, wait: Optional[float] = None) -> None:
        super().__init__(
            unique_id,
            ttl=ttl if ttl is not None else getattr(settings, "SYNC_PROPERTY_LOCK_TTL", 120),
            wait=wait if wait is not None else getattr(settings, "SYNC_PROPERTY_LOCK_WAIT", 10.0),
        )
