"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.dependencies import get_invalidation_handler
from src.api.routes import feed, health, sponsorships, webhooks
from src.config import settings
from src.infrastructure.messaging.rabbitmq_consumer import RabbitMQConsumer

logger = structlog.get_logger(__name__)


def configure_logging(level: str = settings.log_level) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("feed_engine_starting")
    consumer: RabbitMQConsumer | None = None
    if settings.feed_invalidation_consumer_enabled:
        consumer = RabbitMQConsumer()
        consumer.register_handler(get_invalidation_handler())
        consumer.start()
    yield
    if consumer is not None:
        consumer.stop()
    logger.info("feed_engine_stopping")


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Listing Feed Engine",
        description="Sponsored-first listing feed with cached pages and paid boosts.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(feed.router)
    app.include_router(sponsorships.router)
    app.include_router(webhooks.router)

    return app


app = create_app()
