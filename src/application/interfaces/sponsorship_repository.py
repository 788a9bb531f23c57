from abc import ABC, abstractmethod
from collections.abc import Collection
from datetime import datetime
from uuid import UUID

from src.domain.entities.sponsorship import Sponsorship


class SponsorshipRepository(ABC):
    """Port for persisting sponsorship records.

    Uniqueness of the running sponsorship per listing is not assumed here.
    """

    @abstractmethod
    async def insert(self, sponsorship: Sponsorship) -> None:
        ...

    @abstractmethod
    async def save(self, sponsorship: Sponsorship) -> None:
        ...

    @abstractmethod
    async def find_active(self, listing_ids: Collection[UUID], at: datetime) -> list[Sponsorship]:
        """Return confirmed records whose window contains ``at``, possibly several per listing."""
        ...

    @abstractmethod
    async def find_by_session_id(self, session_id: str) -> Sponsorship | None:
        ...
