import structlog

from src.application.services.agent_resolver import AgentResolver
from src.application.use_cases.browse_feed import FeedSessions

logger = structlog.get_logger(__name__)

PROFILE_UPDATED = "profile.updated"


class InvalidateFeedCaches:
    """
    Use case: react to an external change event.

    A profile update drops that owner's cached metadata; any other change
    (sponsorship status, listing write) drops every cached first page.
    Callable from the consumer thread: both caches lock internally.
    """

    def __init__(self, feed_sessions: FeedSessions, agent_resolver: AgentResolver) -> None:
        self._feed_sessions = feed_sessions
        self._agent_resolver = agent_resolver

    def __call__(self, routing_key: str, payload: dict) -> None:  # type: ignore[type-arg]
        if routing_key == PROFILE_UPDATED:
            owner_id = payload.get("user_id")
            if owner_id:
                self._agent_resolver.invalidate(owner_id)
                logger.info("agent_cache_invalidated", owner_id=owner_id)
            return

        self._feed_sessions.invalidate_all()
        logger.info("feed_caches_invalidated", routing_key=routing_key)
