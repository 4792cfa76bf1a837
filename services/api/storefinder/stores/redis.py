"""Redis-backed locks for slug assignment.

One lock per base slug ("lock:slug:<base>") serializes the read-then-insert
window of concurrent creates/renames with the same name. Locks expire on
their own after `ttl` seconds, so a crashed holder never blocks a slug.
"""

import logging
import uuid

import redis.asyncio as redis

from storefinder.settings import get_settings

logger = logging.getLogger("uvicorn.error")

LOCK_PREFIX = "lock:"
SLUG_LOCK_PREFIX = "slug:"
DEFAULT_LOCK_TTL = 5  # seconds

# Deletes the key only while it still holds our token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

_redis: redis.Redis | None = None


async def init_redis() -> None:
    """Connect to REDIS_URL and verify the server answers."""
    global _redis
    _redis = redis.from_url(
        get_settings().redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    await _redis.ping()
    logger.info("Redis connected")


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
    _redis = None


def _client() -> redis.Redis:
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


def slug_lock_key(base_slug: str) -> str:
    return f"{SLUG_LOCK_PREFIX}{base_slug}"


async def acquire_lock(key: str, ttl: int = DEFAULT_LOCK_TTL) -> str | None:
    """Try once to take `key`.

    Returns:
        Token identifying this holder, or None if someone else holds the lock.

    Raises:
        RuntimeError: Redis was never initialized.
    """
    token = uuid.uuid4().hex
    taken = await _client().set(f"{LOCK_PREFIX}{key}", token, nx=True, ex=ttl)
    return token if taken else None


async def release_lock(key: str, token: str) -> bool:
    """Release `key` if `token` still holds it (it may have expired meanwhile)."""
    released = await _client().eval(_RELEASE_SCRIPT, 1, f"{LOCK_PREFIX}{key}", token)
    return bool(released)
