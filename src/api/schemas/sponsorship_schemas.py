from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel

from src.domain.enums.sponsorship_status import SponsorshipStatus


class PurchaseSponsorshipRequest(BaseModel):
    listing_id: UUID
    boost_level: int
    duration_days: int


class CheckoutResponse(BaseModel):
    sponsorship_id: UUID
    url: str
    session_id: str
    boost_level: int
    duration_days: int
    price_amount: Decimal
    currency: str
    sponsored_until: datetime
    status: SponsorshipStatus = SponsorshipStatus.PENDING


class PaymentWebhookPayload(BaseModel):
    type: Literal[
        "checkout.session.completed",
        "checkout.session.expired",
        "checkout.session.cancelled",
    ]
    session_id: str
    payment_status: str | None = None


class PaymentWebhookResponse(BaseModel):
    accepted: bool = True
    sponsorship_id: UUID
    status: SponsorshipStatus
    changed: bool
