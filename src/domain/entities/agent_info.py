from dataclasses import dataclass

from src.domain.enums.property import OwnerKind

DEFAULT_AGENT_NAME = "Owner"
PLACEHOLDER_AVATAR = "/placeholder.svg"


@dataclass(frozen=True)
class AgentInfo:
    """Display metadata for a listing owner. Read-through, never mutated here."""

    name: str = DEFAULT_AGENT_NAME
    avatar: str = PLACEHOLDER_AVATAR
    is_verified: bool = False
    kind: OwnerKind = OwnerKind.INDIVIDUAL
    agency_name: str | None = None

    @classmethod
    def default(cls) -> "AgentInfo":
        return cls()
