"""
Redis Client
============

Async Redis client used to serialize monitoring runs per tenant.

Version: 0.1.0
"""

import asyncio
import time
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import redis.asyncio as aioredis
from redis.asyncio import Redis

from shared.config import settings
from shared.logging import get_logger

logger = get_logger(__name__)


class RedisClient:
    """
    Async Redis client wrapper.

    Provides connection management for the distributed run lock.
    """

    _client: Redis | None = None  # type: ignore[type-arg]

    @classmethod
    def get_client(cls) -> Redis:  # type: ignore[type-arg]
        """Get or create the async client."""
        if cls._client is None:
            cls._client = aioredis.from_url(
                settings.redis.url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=20,
            )
            logger.info(
                "redis_client_created",
                host=settings.redis.host,
            )
        return cls._client

    @classmethod
    async def close(cls) -> None:
        """Close the client and release all connections."""
        if cls._client is not None:
            await cls._client.aclose()
            cls._client = None
            logger.info("redis_client_closed")

    @classmethod
    async def health_check(cls) -> dict[str, Any]:
        """
        Check Redis health.

        Returns:
            dict with status and latency
        """
        try:
            start = time.perf_counter()
            pong = await cls.get_client().ping()
            latency_ms = (time.perf_counter() - start) * 1000

            return {
                "status": "healthy" if pong else "unhealthy",
                "latency_ms": round(latency_ms, 2),
            }
        except Exception as e:
            logger.error("redis_health_check_failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e),
            }


def run_lock_key(tenant_id: str) -> str:
    """Lock name guarding monitoring runs of one tenant."""
    return f"duewatch:run:{tenant_id}"


@asynccontextmanager
async def redis_lock(
    key: str,
    timeout_seconds: int | None = None,
    blocking: bool = False,
    client: Redis | None = None,  # type: ignore[type-arg]
) -> AsyncGenerator[bool, None]:
    """
    Distributed lock using Redis.

    Yields whether the lock was acquired. The lock expires after
    `timeout_seconds` so a crashed holder cannot block the key forever.

    Usage:
        async with redis_lock(run_lock_key(tenant_id)) as acquired:
            if acquired:
                await monitor.run_compliance_monitoring(tenant_id)
    """
    client = client or RedisClient.get_client()
    ttl = timeout_seconds or settings.redis.lock_timeout_seconds
    lock_key = f"lock:{key}"
    lock_value = str(uuid.uuid4())

    try:
        acquired = await client.set(lock_key, lock_value, nx=True, ex=ttl)

        if not acquired and blocking:
            for _ in range(ttl * 10):
                await asyncio.sleep(0.1)
                acquired = await client.set(lock_key, lock_value, nx=True, ex=ttl)
                if acquired:
                    break

        if not acquired:
            logger.info("lock_not_acquired", key=key)

        yield bool(acquired)

    finally:
        # Release only if we still own it
        current = await client.get(lock_key)
        if current == lock_value:
            await client.delete(lock_key)
