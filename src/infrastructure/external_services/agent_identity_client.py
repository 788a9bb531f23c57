"""HTTP client for the public profile endpoint of the identity service."""
import httpx
import structlog

from src.application.interfaces.agent_identity_service import AgentIdentityService
from src.config import settings
from src.domain.entities.agent_info import DEFAULT_AGENT_NAME, PLACEHOLDER_AVATAR, AgentInfo
from src.domain.enums.property import OwnerKind

logger = structlog.get_logger(__name__)


class AgentIdentityError(Exception):
    pass


def _display_name(profile: dict) -> str:  # type: ignore[type-arg]
    first = (profile.get("first_name") or "").strip()
    last = (profile.get("last_name") or "").strip()
    if first and last:
        return f"{first} {last}"
    return first or last or DEFAULT_AGENT_NAME


def _owner_kind(value: str | None) -> OwnerKind:
    try:
        return OwnerKind(value) if value else OwnerKind.INDIVIDUAL
    except ValueError:
        return OwnerKind.INDIVIDUAL


def profile_to_agent_info(profile: dict) -> AgentInfo:  # type: ignore[type-arg]
    return AgentInfo(
        name=_display_name(profile),
        avatar=profile.get("avatar_url") or PLACEHOLDER_AVATAR,
        is_verified=bool(profile.get("agent_verified")),
        kind=_owner_kind(profile.get("user_type")),
        agency_name=profile.get("agency_name"),
    )


class HttpAgentIdentityService(AgentIdentityService):
    """Looks up public owner profiles over HTTP."""

    def __init__(
        self,
        base_url: str = settings.identity_service_url,
        api_key: str = settings.identity_service_api_key,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        self._headers = {"x-api-key": api_key}

    async def resolve(self, owner_id: str) -> AgentInfo | None:
        """
        GET /profiles/{owner_id}/public → {"first_name": ..., "last_name": ..., ...}
        """
        async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
            try:
                response = await client.get(
                    f"{self._base_url}/profiles/{owner_id}/public",
                    headers=self._headers,
                )
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as exc:
                raise AgentIdentityError(
                    f"Identity service returned {exc.response.status_code}"
                ) from exc
            except httpx.RequestError as exc:
                raise AgentIdentityError(f"Failed to reach identity service: {exc}") from exc

        if not data:
            return None
        return profile_to_agent_info(data)
