import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from core.rabbitmq import rabbitmq
from core.settings import settings

from .cache import cache
from .get_db import Base, async_engine

logger = logging.getLogger("startup")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Waiting for application startup...")

    if settings.DATABASE_URL.startswith("sqlite"):
        async with async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite schema ensured.")

    if rabbitmq.enabled:
        try:
            await rabbitmq.connect()
            await rabbitmq.declare_exchange_with_dlq(settings.RABBITMQ_MAIN_EXCHANGE)
            logger.info("RabbitMQ connected.")
        except Exception:
            logger.exception("RabbitMQ connection failed")
    else:
        logger.info("RabbitMQ not configured, domain events are disabled.")

    if not cache.enabled:
        logger.info("Upstash Redis not configured, browse cache is disabled.")

    logger.info("Application startup complete.")

    yield

    try:
        await rabbitmq.close()
    except Exception:
        logger.exception("Failed to close RabbitMQ connection")

    await async_engine.dispose()
    logger.info("Application shutdown complete.")
