"""
Database Module
===============

Async clients for the monitoring engine's collaborators.

Clients:
- PostgreSQL (asyncpg + SQLAlchemy): record store
- Redis: per-tenant run lock
- Kafka (aiokafka): alert hand-off to delivery services

Usage:
    from shared.database import postgres_session, redis_lock

    async with postgres_session() as session:
        ...
"""

from shared.database.kafka import (
    KafkaClient,
    Topics,
)
from shared.database.postgres import (
    Base,
    PostgresClient,
    postgres_session,
)
from shared.database.redis import (
    RedisClient,
    redis_lock,
    run_lock_key,
)


__all__ = [
    # PostgreSQL
    "postgres_session",
    "PostgresClient",
    "Base",
    # Redis
    "RedisClient",
    "redis_lock",
    "run_lock_key",
    # Kafka
    "KafkaClient",
    "Topics",
]
