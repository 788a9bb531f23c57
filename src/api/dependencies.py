"""
FastAPI dependency injection wiring.

Each dependency function returns a fully-constructed object with its
collaborators injected, so the route handlers stay thin. Feed components
(cache, ledger, agent resolver, sessions) are process-wide: one instance is
built on first use and shared by every request.
"""
from functools import lru_cache

from fastapi import Depends

from src.application.cache.ttl_cache import TTLCache
from src.application.interfaces.agent_identity_service import AgentIdentityService
from src.application.interfaces.event_publisher import EventPublisher
from src.application.interfaces.listing_store import ListingStore
from src.application.interfaces.payment_gateway import PaymentGateway
from src.application.interfaces.sponsorship_repository import SponsorshipRepository
from src.application.services.agent_resolver import AgentResolver
from src.application.services.sponsorship_ledger import SponsorshipLedger
from src.application.use_cases.browse_feed import FeedSessions
from src.application.use_cases.cancel_sponsorship_checkout import CancelSponsorshipCheckout
from src.application.use_cases.confirm_sponsorship_payment import ConfirmSponsorshipPayment
from src.application.use_cases.invalidate_feed_caches import InvalidateFeedCaches
from src.application.use_cases.purchase_sponsorship import PurchaseSponsorship
from src.config import settings
from src.domain.entities.feed import FeedSnapshot
from src.infrastructure.database.connection import AsyncSessionLocal
from src.infrastructure.database.repositories.sqlalchemy_listing_store import (
    SqlAlchemyListingStore,
)
from src.infrastructure.database.repositories.sqlalchemy_sponsorship_repository import (
    SqlAlchemySponsorshipRepository,
)
from src.infrastructure.external_services.agent_identity_client import HttpAgentIdentityService
from src.infrastructure.external_services.payment_gateway_client import HttpPaymentGateway
from src.infrastructure.messaging.rabbitmq_publisher import RabbitMQPublisher


# ---- Low-level dependencies ------------------------------------------------

def get_listing_store() -> ListingStore:
    return SqlAlchemyListingStore(AsyncSessionLocal)


def get_sponsorship_repo() -> SponsorshipRepository:
    return SqlAlchemySponsorshipRepository(AsyncSessionLocal)


def get_payment_gateway() -> PaymentGateway:
    return HttpPaymentGateway()


def get_identity_service() -> AgentIdentityService:
    return HttpAgentIdentityService()


def get_event_publisher() -> EventPublisher:
    return RabbitMQPublisher()


def get_ledger(
    sponsorship_repo: SponsorshipRepository = Depends(get_sponsorship_repo),
) -> SponsorshipLedger:
    return SponsorshipLedger(sponsorship_repo)


# ---- Shared feed components ------------------------------------------------

@lru_cache
def get_agent_resolver() -> AgentResolver:
    return AgentResolver(get_identity_service())


@lru_cache
def get_feed_cache() -> TTLCache[FeedSnapshot]:
    return TTLCache(ttl_seconds=settings.feed_cache_ttl_seconds)


@lru_cache
def get_feed_sessions() -> FeedSessions:
    return FeedSessions(
        get_listing_store(),
        SponsorshipLedger(get_sponsorship_repo()),
        get_agent_resolver(),
        get_feed_cache(),
        max_candidates=settings.feed_max_candidates,
        session_idle_seconds=settings.feed_session_idle_seconds,
    )


def get_invalidation_handler() -> InvalidateFeedCaches:
    return InvalidateFeedCaches(get_feed_sessions(), get_agent_resolver())


# ---- Use-case dependencies -------------------------------------------------

def get_purchase_sponsorship_use_case(
    listing_store: ListingStore = Depends(get_listing_store),
    sponsorship_repo: SponsorshipRepository = Depends(get_sponsorship_repo),
    ledger: SponsorshipLedger = Depends(get_ledger),
    payment_gateway: PaymentGateway = Depends(get_payment_gateway),
    event_publisher: EventPublisher = Depends(get_event_publisher),
) -> PurchaseSponsorship:
    return PurchaseSponsorship(
        listing_store,
        sponsorship_repo,
        ledger,
        payment_gateway,
        event_publisher,
        currency=settings.sponsorship_currency,
    )


def get_confirm_payment_use_case(
    sponsorship_repo: SponsorshipRepository = Depends(get_sponsorship_repo),
    event_publisher: EventPublisher = Depends(get_event_publisher),
) -> ConfirmSponsorshipPayment:
    return ConfirmSponsorshipPayment(sponsorship_repo, event_publisher)


def get_cancel_checkout_use_case(
    sponsorship_repo: SponsorshipRepository = Depends(get_sponsorship_repo),
    event_publisher: EventPublisher = Depends(get_event_publisher),
) -> CancelSponsorshipCheckout:
    return CancelSponsorshipCheckout(sponsorship_repo, event_publisher)
