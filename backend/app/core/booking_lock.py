"""Keyed locks serializing check-then-write sequences.

Overlap detection for a coach and capacity checks for a session are
read-then-write sequences. A lock is taken in two layers:

- an in-process lock per key, so threads of one worker queue locally
- a Redis lock (SET NX EX with an owner token) when ``settings.redis_url``
  is set, so the workers of a multi-process deployment exclude each other

When Redis is configured but unreachable the Redis layer is skipped with a
warning. The conditional INSERT/UPDATE/DELETE statements in the
repositories keep the invariants in that case.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
import threading
import time
from typing import Dict, Iterator, Optional
import uuid

from redis import Redis
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.exceptions import LockTimeoutException
from app.monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

SLOW_WAIT_SECONDS = 0.5
REDIS_POLL_SECONDS = 0.05

# Delete the key only while it still holds our token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()


@dataclass
class _LocalLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    # Threads holding or waiting for the lock; the entry is dropped at zero
    users: int = 0


_REGISTRY_LOCK = threading.Lock()
_LOCKS: Dict[str, _LocalLock] = {}


def _schedule_key(coach_id: str) -> str:
    return f"coach:{coach_id}:schedule"


def _capacity_key(session_id: str) -> str:
    return f"session:{session_id}:capacity"


def _credit_key(coach_id: str) -> str:
    return f"coach:{coach_id}:credits"


def _namespaced_key(key: str) -> str:
    return f"{settings.lock_namespace}:lock:{key}"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if not settings.redis_url:
        return None
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            client.ping()
        except (RedisError, ValueError) as exc:
            logger.warning("booking_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


# In-process layer


def _checkout(key: str) -> _LocalLock:
    with _REGISTRY_LOCK:
        entry = _LOCKS.get(key)
        if entry is None:
            entry = _LocalLock()
            _LOCKS[key] = entry
        entry.users += 1
        return entry


def _checkin(key: str, entry: _LocalLock) -> None:
    with _REGISTRY_LOCK:
        entry.users -= 1
        if entry.users <= 0 and _LOCKS.get(key) is entry:
            del _LOCKS[key]


# Redis layer


def _acquire_distributed(key: str, kind: str, deadline: float) -> Optional[str]:
    """
    Take the Redis lock for ``key``, polling until ``deadline``.

    Returns the owner token, or None when the Redis layer is not in use.

    Raises:
        LockTimeoutException: Another worker held the key past the deadline
    """
    client = _get_sync_redis()
    if client is None:
        return None

    name = _namespaced_key(key)
    token = uuid.uuid4().hex
    try:
        while True:
            if client.set(name, token, nx=True, ex=settings.lock_ttl_seconds):
                prometheus_metrics.record_lock_event(kind, "acquired")
                return token
            if time.monotonic() >= deadline:
                prometheus_metrics.record_lock_event(kind, "timeout")
                raise LockTimeoutException(key)
            time.sleep(REDIS_POLL_SECONDS)
    except RedisError as exc:
        prometheus_metrics.record_lock_event(kind, "redis_error")
        logger.warning(
            "booking_lock_redis_acquire_failed",
            extra={"lock_key": key, "error": str(exc), "error_type": type(exc).__name__},
        )
        return None


def _release_distributed(key: str, kind: str, token: str) -> None:
    client = _get_sync_redis()
    if client is None:
        return
    try:
        released = client.eval(_RELEASE_SCRIPT, 1, _namespaced_key(key), token)
    except RedisError as exc:
        prometheus_metrics.record_lock_event(kind, "redis_error")
        logger.warning(
            "booking_lock_redis_release_failed",
            extra={"lock_key": key, "error": str(exc), "error_type": type(exc).__name__},
        )
        return
    if not released:
        # TTL ran out while the holder was still working
        prometheus_metrics.record_lock_event(kind, "expired")
        logger.warning("booking_lock_expired_before_release", extra={"lock_key": key})


@contextmanager
def _hold(key: str, kind: str) -> Iterator[None]:
    entry = _checkout(key)
    started = time.monotonic()
    deadline = started + settings.lock_wait_seconds
    try:
        if not entry.lock.acquire(timeout=settings.lock_wait_seconds):
            prometheus_metrics.record_lock_event(kind, "timeout")
            raise LockTimeoutException(key)
        try:
            token = _acquire_distributed(key, kind, deadline)
            waited = time.monotonic() - started
            prometheus_metrics.record_lock_wait(kind, waited)
            if waited > SLOW_WAIT_SECONDS:
                logger.warning(
                    "booking_lock_slow_acquire",
                    extra={"lock_key": key, "waited_s": round(waited, 3)},
                )
            try:
                yield
            finally:
                if token is not None:
                    _release_distributed(key, kind, token)
        finally:
            entry.lock.release()
    finally:
        _checkin(key, entry)


@contextmanager
def coach_schedule_lock(coach_id: str) -> Iterator[None]:
    """Serialize session creation and deletion for one coach."""
    with _hold(_schedule_key(coach_id), "schedule"):
        yield


@contextmanager
def session_capacity_lock(session_id: str) -> Iterator[None]:
    """Serialize booking writes that depend on one session's capacity."""
    with _hold(_capacity_key(session_id), "capacity"):
        yield


@contextmanager
def coach_credit_lock(coach_id: str) -> Iterator[None]:
    """Serialize credit initialization and deduction for one coach."""
    with _hold(_credit_key(coach_id), "credits"):
        yield


def reset_locks() -> None:
    """Forget registered in-process locks and the cached Redis client."""
    global _SYNC_REDIS
    with _REGISTRY_LOCK:
        _LOCKS.clear()
    with _SYNC_REDIS_LOCK:
        _SYNC_REDIS = None
