"""Unit tests for the HTTP clients (via httpx.MockTransport) and the messaging adapters."""
import json
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import httpx
import pytest

from src.domain.entities.agent_info import DEFAULT_AGENT_NAME, PLACEHOLDER_AVATAR
from src.domain.enums.property import OwnerKind
from src.domain.enums.sponsorship_status import SponsorshipStatus
from src.domain.events.sponsorship_events import (
    SponsorshipRequestedEvent,
    SponsorshipStatusChangedEvent,
)
from src.infrastructure.external_services.agent_identity_client import (
    AgentIdentityError,
    HttpAgentIdentityService,
    profile_to_agent_info,
)
from src.infrastructure.external_services.payment_gateway_client import (
    HttpPaymentGateway,
    PaymentGatewayError,
)
from src.infrastructure.messaging.rabbitmq_consumer import (
    INVALIDATING_ROUTING_KEYS,
    RabbitMQConsumer,
    declare_topology,
)
from src.infrastructure.messaging.rabbitmq_publisher import event_to_routing_key, serialise_event


class TestHttpPaymentGateway:
    @pytest.mark.asyncio
    async def test_posts_checkout_and_returns_session(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "cs_1", "url": "https://pay.example/cs_1"})

        gateway = HttpPaymentGateway(
            base_url="http://payments/",
            api_key="secret",
            success_url="http://app/ok",
            cancel_url="http://app/",
            transport=httpx.MockTransport(handler),
        )

        session = await gateway.create_checkout(
            Decimal("350000"), "XOF", {"listing_id": "abc", "boost_level": "2"}
        )

        assert session.session_id == "cs_1"
        assert session.url == "https://pay.example/cs_1"
        [request] = seen
        assert request.url.path == "/checkout/sessions"
        assert request.headers["Authorization"] == "Bearer secret"
        body = json.loads(request.content)
        assert body["amount"] == "350000"
        assert body["currency"] == "XOF"
        assert body["metadata"]["boost_level"] == "2"
        assert body["success_url"] == "http://app/ok"

    @pytest.mark.asyncio
    async def test_error_status_raises_gateway_error(self) -> None:
        gateway = HttpPaymentGateway(
            base_url="http://payments",
            transport=httpx.MockTransport(lambda request: httpx.Response(502, text="bad gateway")),
        )

        with pytest.raises(PaymentGatewayError):
            await gateway.create_checkout(Decimal("1"), "XOF", {})


class TestHttpAgentIdentityService:
    @pytest.mark.asyncio
    async def test_maps_public_profile(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/profiles/user-7/public"
            return httpx.Response(
                200,
                json={
                    "first_name": "Awa",
                    "last_name": "Ndiaye",
                    "avatar_url": "https://cdn.example/awa.png",
                    "agent_verified": True,
                    "user_type": "agency",
                    "agency_name": "Teranga Immo",
                },
            )

        service = HttpAgentIdentityService(
            base_url="http://identity", transport=httpx.MockTransport(handler)
        )

        agent = await service.resolve("user-7")

        assert agent is not None
        assert agent.name == "Awa Ndiaye"
        assert agent.is_verified is True
        assert agent.kind is OwnerKind.AGENCY
        assert agent.agency_name == "Teranga Immo"

    @pytest.mark.asyncio
    async def test_missing_profile_returns_none(self) -> None:
        service = HttpAgentIdentityService(
            base_url="http://identity",
            transport=httpx.MockTransport(lambda request: httpx.Response(404)),
        )

        assert await service.resolve("ghost") is None

    @pytest.mark.asyncio
    async def test_server_error_raises(self) -> None:
        service = HttpAgentIdentityService(
            base_url="http://identity",
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        )

        with pytest.raises(AgentIdentityError):
            await service.resolve("user-1")

    def test_sparse_profile_uses_defaults(self) -> None:
        agent = profile_to_agent_info({"first_name": " ", "user_type": "landlord"})

        assert agent.name == DEFAULT_AGENT_NAME
        assert agent.avatar == PLACEHOLDER_AVATAR
        assert agent.kind is OwnerKind.INDIVIDUAL
        assert agent.is_verified is False

    def test_single_name_part(self) -> None:
        assert profile_to_agent_info({"last_name": "Sow"}).name == "Sow"


class TestEventSerialisation:
    def test_status_change_routes_by_target_status(self) -> None:
        event = SponsorshipStatusChangedEvent(
            sponsorship_id=uuid4(),
            listing_id=uuid4(),
            from_status=SponsorshipStatus.PENDING,
            to_status=SponsorshipStatus.ACTIVE,
            triggered_by="payment_webhook",
        )

        assert event_to_routing_key(event) == "sponsorship.active"
        payload = json.loads(serialise_event(event))
        assert payload["to_status"] == "active"
        assert payload["listing_id"] == str(event.listing_id)

    def test_requested_event(self) -> None:
        event = SponsorshipRequestedEvent(
            sponsorship_id=uuid4(),
            listing_id=uuid4(),
            owner_id="user-1",
            boost_level=3,
            duration_days=30,
            checkout_session_id="cs_9",
        )

        assert event_to_routing_key(event) == "sponsorship.requested"
        assert json.loads(serialise_event(event))["checkout_session_id"] == "cs_9"


class TestInvalidationConsumer:
    def _deliver(self, consumer: RabbitMQConsumer, routing_key: str, body: bytes) -> MagicMock:
        channel = MagicMock()
        method = MagicMock(routing_key=routing_key, delivery_tag=7)
        consumer._on_message(channel, method, MagicMock(), body)
        return channel

    def test_dispatches_and_acks(self) -> None:
        seen: list[tuple[str, dict]] = []  # type: ignore[type-arg]
        consumer = RabbitMQConsumer(rabbitmq_url="amqp://unused")
        consumer.register_handler(lambda key, payload: seen.append((key, payload)))

        channel = self._deliver(consumer, "sponsorship.active", b'{"listing_id": "abc"}')

        assert seen == [("sponsorship.active", {"listing_id": "abc"})]
        channel.basic_ack.assert_called_once_with(delivery_tag=7)
        channel.basic_nack.assert_not_called()

    def test_bad_payload_is_dropped_without_requeue(self) -> None:
        consumer = RabbitMQConsumer(rabbitmq_url="amqp://unused")
        consumer.register_handler(MagicMock())

        channel = self._deliver(consumer, "listing.updated", b"not json")

        channel.basic_nack.assert_called_once_with(delivery_tag=7, requeue=False)
        channel.basic_ack.assert_not_called()

    def test_topology_binds_every_invalidating_key(self) -> None:
        channel = MagicMock()

        declare_topology(channel)

        bound = [call.kwargs["routing_key"] for call in channel.queue_bind.call_args_list]
        assert bound == list(INVALIDATING_ROUTING_KEYS)
