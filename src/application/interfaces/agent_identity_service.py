from abc import ABC, abstractmethod

from src.domain.entities.agent_info import AgentInfo


class AgentIdentityService(ABC):
    """Port for looking up public owner profiles."""

    @abstractmethod
    async def resolve(self, owner_id: str) -> AgentInfo | None:
        """Return the owner's display metadata, or None when no profile exists."""
        ...
