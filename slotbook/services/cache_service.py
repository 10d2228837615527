"""
Redis caching service for the product catalog.

CACHING STRATEGY
================

What we cache:
  - The product listing and individual product details (JSON-serialized)
  - Cache keys: "products:list" and "products:detail:{product_id}"

Why:
  - Products are immutable for the booking flow (name + capacity)
  - Listing products is the entry point of every client session

Invalidation strategy:
  - None needed while products are immutable; TTL bounds staleness if an
    operator edits a product row directly (5 minutes)

Why NOT cache availability or bookings:
  - Vacancy is derived from the live booked-unit count; a cached value
    would let clients see capacity that is already gone
  - The reservation path must read its count inside its own transaction

Redis is advisory: any Redis error is logged and treated as a cache miss.
"""

import json
from typing import Optional

import redis.asyncio as redis
from slotbook.core.config import get_settings
from slotbook.core.logging import get_logger
from slotbook.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

PRODUCT_LIST_KEY = "products:list"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            # Test connection
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_product_key(product_id) -> str:
    return f"products:detail:{product_id}"


async def _get(key: str):
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def _set(key: str, data) -> None:
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def get_cached_products() -> Optional[list]:
    return await _get(PRODUCT_LIST_KEY)


async def set_cached_products(data: list) -> None:
    await _set(PRODUCT_LIST_KEY, data)


async def get_cached_product(product_id) -> Optional[dict]:
    return await _get(_make_product_key(product_id))


async def set_cached_product(product_id, data: dict) -> None:
    await _set(_make_product_key(product_id), data)


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
