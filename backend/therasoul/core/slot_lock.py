"""
Per-slot mutexes guarding the booking critical section.

A slot is (therapist_id, date, time). Holding its lock serializes the
"check for an active session, then insert" sequence for concurrent bookers.
The partial unique index on ``sessions`` remains the final guarantee; these
locks only make the loser fail fast with a clean conflict instead of an
integrity error.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
import threading
import time
from typing import Dict, Iterator, List, Optional

from redis import Redis, RedisError

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import Settings
from .ulid_helper import generate_ulid

logger = logging.getLogger(__name__)


def slot_key(therapist_id: str, date: str, time_of_day: str) -> str:
    return f"slot:{therapist_id}:{date}:{time_of_day}:mutex"


class SlotLocks(ABC):
    """Acquire/release contract shared by the lock backends."""

    @abstractmethod
    def acquire(self, key: str) -> Optional[str]:
        """Return an ownership token when the lock is acquired, otherwise None."""

    @abstractmethod
    def release(self, key: str, token: str) -> None:
        """Release a lock previously acquired with ``token``."""

    @contextmanager
    def hold(self, therapist_id: str, date: str, time_of_day: str) -> Iterator[bool]:
        key = slot_key(therapist_id, date, time_of_day)
        token = self.acquire(key)
        try:
            yield token is not None
        finally:
            if token is not None:
                self.release(key, token)


@dataclass
class _LockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0  # threads holding or waiting


class InProcessSlotLocks(SlotLocks):
    """Thread locks keyed by slot, for single-process deployments and tests."""

    def __init__(self, wait_seconds: float = 5.0) -> None:
        self.wait_seconds = wait_seconds
        self._guard = threading.Lock()
        self._entries: Dict[str, _LockEntry] = {}

    def _checkout(self, key: str) -> _LockEntry:
        with self._guard:
            entry = self._entries.setdefault(key, _LockEntry())
            entry.holders += 1
            return entry

    def _checkin(self, key: str) -> None:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                return
            entry.holders -= 1
            if entry.holders <= 0:
                del self._entries[key]

    def acquire(self, key: str) -> Optional[str]:
        entry = self._checkout(key)
        if entry.lock.acquire(timeout=self.wait_seconds):
            prometheus_metrics.record_slot_lock("acquire", "success")
            return generate_ulid()
        self._checkin(key)
        prometheus_metrics.record_slot_lock("acquire", "blocked")
        return None

    def release(self, key: str, token: str) -> None:
        with self._guard:
            entry = self._entries.get(key)
        if entry is None:
            prometheus_metrics.record_slot_lock("release", "not_found")
            return
        entry.lock.release()
        self._checkin(key)
        prometheus_metrics.record_slot_lock("release", "success")

    def active_keys(self) -> List[str]:
        with self._guard:
            return list(self._entries)


class RedisSlotLocks(SlotLocks):
    """
    SET NX EX locks shared across processes.

    Release runs a compare-and-delete script: only the holder of the token
    removes the key.

    Redis being unavailable fails open: the database uniqueness constraint
    still rejects a double booking.
    """

    _POLL_INTERVAL_S = 0.05
    _RELEASE_SCRIPT = (
        "if redis.call('get', KEYS[1]) == ARGV[1] then "
        "return redis.call('del', KEYS[1]) else return 0 end"
    )

    def __init__(
        self,
        client: Redis,
        *,
        namespace: str = "therasoul",
        ttl_s: int = 30,
        wait_seconds: float = 5.0,
    ) -> None:
        self.client = client
        self.namespace = namespace
        self.ttl_s = ttl_s
        self.wait_seconds = wait_seconds
        self._release = client.register_script(self._RELEASE_SCRIPT)

    def _namespaced_key(self, key: str) -> str:
        return f"{self.namespace}:lock:{key}"

    def acquire(self, key: str) -> Optional[str]:
        token = generate_ulid()
        deadline = time.monotonic() + self.wait_seconds
        namespaced = self._namespaced_key(key)
        try:
            while True:
                if self.client.set(namespaced, token, nx=True, ex=self.ttl_s):
                    prometheus_metrics.record_slot_lock("acquire", "success")
                    return token
                if time.monotonic() >= deadline:
                    prometheus_metrics.record_slot_lock("acquire", "blocked")
                    return None
                time.sleep(self._POLL_INTERVAL_S)
        except RedisError as exc:
            prometheus_metrics.record_slot_lock("acquire", "error")
            logger.warning(
                "slot_lock_acquire_failed",
                extra={"key": key, "error": str(exc), "error_type": type(exc).__name__},
            )
            return token

    def release(self, key: str, token: str) -> None:
        namespaced = self._namespaced_key(key)
        try:
            if not self._release(keys=[namespaced], args=[token]):
                prometheus_metrics.record_slot_lock("release", "not_found")
                return
            prometheus_metrics.record_slot_lock("release", "success")
        except RedisError as exc:
            prometheus_metrics.record_slot_lock("release", "error")
            logger.warning(
                "slot_lock_release_failed",
                extra={"key": key, "error": str(exc), "error_type": type(exc).__name__},
            )


def build_slot_locks(config: Settings) -> SlotLocks:
    """Pick the lock backend from configuration."""
    if not config.slot_lock_redis_url:
        return InProcessSlotLocks(wait_seconds=config.slot_lock_wait_seconds)

    client = Redis.from_url(
        config.slot_lock_redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=2,
    )
    try:
        client.ping()
    except RedisError as exc:
        logger.warning("slot_lock_redis_unavailable, using in-process locks: %s", exc)
        return InProcessSlotLocks(wait_seconds=config.slot_lock_wait_seconds)
    return RedisSlotLocks(
        client,
        namespace=config.slot_lock_namespace,
        ttl_s=config.slot_lock_ttl_seconds,
        wait_seconds=config.slot_lock_wait_seconds,
    )
