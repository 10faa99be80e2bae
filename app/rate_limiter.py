"""
Hybrid in-memory + Redis rate limiting utilities.

Counters live in process memory and are synced to Redis periodically when
REDIS_URL is configured, so several workers share an approximate budget.
Without REDIS_URL the limiter runs memory-only.
"""

import logging
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request

from .config import RATE_LIMIT_ENABLED, REDIS_URL

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None

# Format: {key: {'count': int, 'reset_time': int, 'last_redis_sync': int}}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

MEMORY_CACHE_SYNC_INTERVAL = 10  # seconds between Redis syncs per key
MEMORY_CACHE_CLEANUP_INTERVAL = 60
last_cleanup_time = 0


def get_redis_client() -> Optional[redis.Redis]:
    """Get or create the Redis client. Returns None when REDIS_URL is not set."""
    global redis_client

    if redis_client is None and REDIS_URL:
        masked_url = REDIS_URL.split("@")[-1] if "@" in REDIS_URL else "****"
        logger.info(f"📡 Connecting to Redis for rate limiting: {masked_url}")
        redis_client = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        redis_client.ping()
        logger.info("✅ Redis connected")

    return redis_client


def reset_rate_limits() -> None:
    """Drop all in-memory counters"""
    with cache_lock:
        memory_cache.clear()


def cleanup_expired_cache():
    """Remove expired entries from memory cache"""
    global last_cleanup_time
    current_time = int(time.time())

    if current_time - last_cleanup_time < MEMORY_CACHE_CLEANUP_INTERVAL:
        return

    with cache_lock:
        expired_keys = [
            k for k, v in memory_cache.items() if current_time >= v.get("reset_time", 0)
        ]
        for k in expired_keys:
            del memory_cache[k]

        if expired_keys:
            logger.debug(f"🧹 Cleaned up {len(expired_keys)} expired rate limit entries")

    last_cleanup_time = current_time


def _new_entry(current_time: int, window_seconds: int, client: Optional[redis.Redis], key: str) -> dict:
    if client is not None:
        try:
            redis_count = client.get(key)
            redis_ttl = client.ttl(key)
            if redis_count and redis_ttl > 0:
                return {
                    "count": int(redis_count),
                    "reset_time": current_time + redis_ttl,
                    "last_redis_sync": current_time,
                }
        except redis.RedisError as e:
            logger.warning(f"⚠️ Failed to load {key} from Redis, using memory only: {e}")

    return {
        "count": 0,
        "reset_time": current_time + window_seconds,
        "last_redis_sync": current_time,
    }


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: Optional[redis.Redis] = None
) -> tuple[bool, int, int]:
    """
    Count one request against ``key``.

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    current_time = int(time.time())
    cleanup_expired_cache()

    with cache_lock:
        if key not in memory_cache:
            memory_cache[key] = _new_entry(current_time, window_seconds, client, key)

        cache_entry = memory_cache[key]

        if current_time >= cache_entry["reset_time"]:
            cache_entry["count"] = 0
            cache_entry["reset_time"] = current_time + window_seconds
            cache_entry["last_redis_sync"] = 0

        is_allowed = cache_entry["count"] < limit
        if is_allowed:
            cache_entry["count"] += 1

        if client is not None:
            time_since_sync = current_time - cache_entry.get("last_redis_sync", 0)
            if time_since_sync >= MEMORY_CACHE_SYNC_INTERVAL:
                try:
                    client.set(key, cache_entry["count"], ex=window_seconds)
                    cache_entry["last_redis_sync"] = current_time
                    logger.debug(f"📡 Synced {key} to Redis: {cache_entry['count']}/{limit}")
                except redis.RedisError as e:
                    logger.warning(f"⚠️ Failed to sync {key} to Redis: {e}")

        ttl = cache_entry["reset_time"] - current_time
        return is_allowed, cache_entry["count"], max(0, ttl)


def rate_limit_key(request: Request, key_prefix: str) -> str:
    """Per-user key when the caller identified itself, per-IP otherwise"""
    user_id = request.headers.get("X-User-Id")
    if user_id:
        return f"{key_prefix}:user:{user_id}"

    client_ip = request.client.host if request.client else "unknown"
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        client_ip = forwarded.split(",")[0].strip()
    return f"{key_prefix}:ip:{client_ip}"


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        schedule_request_limit = create_rate_limiter(limit=20, window_seconds=60, key_prefix="schedule_request")

        @router.post("/request")
        def request_appointment(..., _: None = Depends(schedule_request_limit)):
            ...
    """

    def rate_limiter(request: Request):
        if not RATE_LIMIT_ENABLED:
            return

        key = rate_limit_key(request, key_prefix)
        try:
            client = get_redis_client()
        except redis.RedisError as e:
            logger.warning(f"⚠️ Redis unavailable, rate limiting from memory only: {e}")
            client = None

        is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, client)
        if not is_allowed:
            logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {current_count}/{limit} requests used")
            raise HTTPException(
                status_code=429,
                detail={
                    "message": f"Limite de requisições excedido. Máximo de {limit} a cada {window_seconds} segundos.",
                    "retry_after": ttl,
                    "limit": limit,
                    "window_seconds": window_seconds,
                },
                headers={"Retry-After": str(ttl)},
            )

        request.state.rate_limit_remaining = limit - current_count

    return rate_limiter
