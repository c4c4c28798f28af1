# discharge_tracker/core/redis.py
"""
Redis connection and locking utilities.
Redis is used for:
- Serialising SLA monitor scans across processes (the cron runner, the
  on-demand /sla/check endpoint and any extra workers)

The app should boot even if Redis is unavailable (degraded mode). In degraded
mode locks are process-local.
"""

import logging
import threading
import uuid
from typing import Optional

import redis

from discharge_tracker.core.config import get_settings

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None
_redis_available: bool = False

_local_locks: dict[str, threading.Lock] = {}
_local_locks_guard = threading.Lock()

LOCK_KEY_PREFIX = "lock:"

# Delete the key only while it still holds our token.
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


def get_redis_client() -> Optional[redis.Redis]:
    """
    Get Redis client instance.
    Returns None if Redis is not configured or unavailable.
    """
    global _redis_client, _redis_available

    if _redis_client is not None:
        return _redis_client if _redis_available else None

    settings = get_settings()

    if not settings.redis_url:
        return None

    try:
        _redis_client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        # Test connection
        _redis_client.ping()
        _redis_available = True
        logger.info("Redis connection established successfully.")
        return _redis_client
    except redis.RedisError as e:
        logger.warning(
            f"Failed to connect to Redis: {e}. Running in degraded mode (local locks)."
        )
        _redis_available = False
        return None


def is_redis_available() -> bool:
    """Check if Redis is available."""
    client = get_redis_client()
    if not client:
        return False
    try:
        client.ping()
        return True
    except redis.RedisError:
        return False


def _local_lock(name: str) -> threading.Lock:
    with _local_locks_guard:
        lock = _local_locks.get(name)
        if lock is None:
            lock = threading.Lock()
            _local_locks[name] = lock
        return lock


def acquire_lock(name: str, ttl: int = 60) -> Optional[str]:
    """
    Try to take a named lock without blocking.

    Returns an ownership token on success, None if somebody else holds it.
    The Redis lock expires after `ttl` seconds so a crashed holder cannot
    wedge the monitor.
    """
    client = get_redis_client()
    if client:
        token = uuid.uuid4().hex
        try:
            if client.set(f"{LOCK_KEY_PREFIX}{name}", token, nx=True, ex=ttl):
                return token
            return None
        except redis.RedisError as e:
            logger.warning(f"Redis lock error for '{name}': {e}. Falling back to local lock.")

    if _local_lock(name).acquire(blocking=False):
        return "local"
    return None


def release_lock(name: str, token: str) -> None:
    """Release a lock previously returned by acquire_lock."""
    if token == "local":
        _local_lock(name).release()
        return

    client = get_redis_client()
    if not client:
        return
    key = f"{LOCK_KEY_PREFIX}{name}"
    try:
        if not client.eval(_RELEASE_SCRIPT, 1, key, token):
            logger.warning(f"Lock '{name}' expired or was taken over before release.")
    except redis.RedisError as e:
        logger.warning(f"Redis unlock error for '{name}': {e}")
