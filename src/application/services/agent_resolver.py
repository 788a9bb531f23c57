import asyncio
import threading
from collections.abc import Sequence

import structlog

from src.application.interfaces.agent_identity_service import AgentIdentityService
from src.domain.entities.agent_info import AgentInfo

logger = structlog.get_logger(__name__)


class AgentResolver:
    """
    Batch-resolves owner display metadata.

    Ids are deduplicated before any lookup. A failed or missing lookup maps
    to ``AgentInfo.default()`` and never fails the batch. Successful lookups
    are cached per owner id with no expiry until invalidated.
    """

    def __init__(self, identity_service: AgentIdentityService) -> None:
        self._identity_service = identity_service
        self._cache: dict[str, AgentInfo] = {}
        self._lock = threading.Lock()

    async def resolve_batch(self, owner_ids: Sequence[str]) -> dict[str, AgentInfo]:
        unique_ids = list(dict.fromkeys(owner_ids))
        resolved: dict[str, AgentInfo] = {}
        pending: list[str] = []

        with self._lock:
            for owner_id in unique_ids:
                cached = self._cache.get(owner_id)
                if cached is not None:
                    resolved[owner_id] = cached
                elif not owner_id:
                    resolved[owner_id] = AgentInfo.default()
                else:
                    pending.append(owner_id)

        if pending:
            results = await asyncio.gather(
                *(self._identity_service.resolve(owner_id) for owner_id in pending),
                return_exceptions=True,
            )
            fetched: dict[str, AgentInfo] = {}
            for owner_id, result in zip(pending, results):
                if isinstance(result, BaseException):
                    logger.warning("agent_resolution_failed", owner_id=owner_id, error=str(result))
                    resolved[owner_id] = AgentInfo.default()
                elif result is None:
                    resolved[owner_id] = AgentInfo.default()
                else:
                    resolved[owner_id] = result
                    fetched[owner_id] = result

            with self._lock:
                self._cache.update(fetched)

            logger.debug(
                "agents_resolved",
                requested=len(unique_ids),
                looked_up=len(pending),
                cached=len(fetched),
            )

        return resolved

    def invalidate(self, owner_id: str) -> None:
        with self._lock:
            self._cache.pop(owner_id, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
