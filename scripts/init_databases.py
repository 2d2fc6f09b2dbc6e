#!/usr/bin/env python3
"""
Database Initialization Script
==============================

Create the record store tables, verify collaborators and optionally seed a
tenant with the Guyana sample catalog.

Usage:
    python scripts/init_databases.py
    python scripts/init_databases.py --postgres-only
    python scripts/init_databases.py --seed-tenant demo

Version: 0.1.0
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.logging import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False, service_name="init-db")
logger = get_logger(__name__)


async def init_postgres() -> bool:
    """Create record store tables."""
    from sqlalchemy import text

    import services.monitoring.store.tables  # noqa: F401  registers tables on Base
    from shared.database.postgres import PostgresClient

    logger.info("postgres_init_started")

    try:
        async with PostgresClient.get_engine().begin() as conn:
            version = (await conn.execute(text("SELECT version()"))).scalar()
        logger.info("postgres_connected", version=str(version)[:50])

        await PostgresClient.create_all()
        return True

    except Exception as e:
        logger.error("postgres_init_failed", error=str(e))
        return False


async def init_redis() -> bool:
    """Verify the Redis connection used for run locks."""
    from shared.database.redis import RedisClient

    health = await RedisClient.health_check()
    if health.get("status") == "healthy":
        logger.info("redis_connected", latency_ms=health.get("latency_ms"))
        return True

    logger.error("redis_init_failed", error=health.get("error"))
    return False


async def init_kafka() -> bool:
    """Verify the Kafka connection used for alert hand-off."""
    from shared.database.kafka import KafkaClient

    try:
        health = await KafkaClient.health_check()
        if health.get("status") == "healthy":
            logger.info("kafka_connected", brokers=health["brokers"])
            return True

        logger.error("kafka_init_failed", error=health.get("error"))
        return False

    finally:
        await KafkaClient.close()


async def seed_tenant(tenant_id: str) -> bool:
    """Store the Guyana sample catalog for a tenant."""
    from services.monitoring.catalog import guyana_catalog, load_catalog
    from services.monitoring.store.postgres import PostgresRecordStore

    document = guyana_catalog()
    catalog = load_catalog(document)
    if catalog.errors:
        logger.error("seed_catalog_invalid", errors=[str(e) for e in catalog.errors])
        return False

    try:
        await PostgresRecordStore().put_catalog(tenant_id, document)
    except Exception as e:
        logger.error("seed_failed", tenant_id=tenant_id, error=str(e))
        return False

    logger.info(
        "tenant_seeded",
        tenant_id=tenant_id,
        authorities=len(catalog.authorities),
        requirements=len(catalog.requirements),
    )
    return True


async def main(args: argparse.Namespace) -> int:
    """Main initialization function."""
    from shared.database.postgres import PostgresClient

    results: dict[str, bool] = {}

    results["postgres"] = await init_postgres()

    if not args.postgres_only:
        results["redis"] = await init_redis()
        if args.with_kafka:
            results["kafka"] = await init_kafka()

    if args.seed_tenant and results["postgres"]:
        results["seed"] = await seed_tenant(args.seed_tenant)

    await PostgresClient.close()

    failed = [name for name, ok in results.items() if not ok]
    logger.info("init_summary", results=results)

    if failed:
        logger.error("init_failed", failed=failed)
        return 1
    return 0


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Initialize Duewatch collaborators",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--postgres-only",
        action="store_true",
        help="Only create PostgreSQL tables",
    )
    parser.add_argument(
        "--with-kafka",
        action="store_true",
        help="Also verify the Kafka connection",
    )
    parser.add_argument(
        "--seed-tenant",
        metavar="TENANT_ID",
        help="Store the Guyana sample catalog for this tenant",
    )

    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    exit_code = asyncio.run(main(args))
    sys.exit(exit_code)
