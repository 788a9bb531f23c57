import pika
from fastapi import APIRouter, Depends
from sqlalchemy import text

from src.api.dependencies import get_feed_sessions
from src.application.use_cases.browse_feed import FeedSessions
from src.config import settings
from src.infrastructure.database.connection import AsyncSessionLocal

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    sessions: FeedSessions = Depends(get_feed_sessions),
) -> dict:  # type: ignore[type-arg]
    """Liveness + dependency health check."""
    db_status = "connected"
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        db_status = f"error: {exc}"

    rabbitmq_status = "connected"
    try:
        connection = pika.BlockingConnection(pika.URLParameters(settings.rabbitmq_url))
        connection.close()
    except Exception as exc:
        rabbitmq_status = f"error: {exc}"

    overall = "healthy" if db_status == "connected" and rabbitmq_status == "connected" else "degraded"

    return {
        "status": overall,
        "database": db_status,
        "rabbitmq": rabbitmq_status,
        "cached_feeds": len(sessions.cache),
        "open_feed_sessions": sessions.open_sessions(),
    }
