"""
SQLAlchemy ORM models.

These are purely infrastructure concerns. Domain entities are mapped to/from
these models inside the repository implementations.
"""
import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.domain.enums.sponsorship_status import SponsorshipStatus
from src.infrastructure.database.connection import Base

_sponsorship_status_enum = SAEnum(
    SponsorshipStatus,
    name="sponsorship_status",
    values_callable=lambda obj: [e.value for e in obj],
)


class ListingModel(Base):
    """Listings are written by the listing service; the feed only reads them."""

    __tablename__ = "listings"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(512), nullable=False)
    price: Mapped[float] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="XOF")

    # Location
    city: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    neighborhood: Mapped[str | None] = mapped_column(String(256), nullable=True)
    country: Mapped[str | None] = mapped_column(String(8), nullable=True, index=True)
    longitude: Mapped[float | None] = mapped_column(Numeric(9, 6), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Numeric(9, 6), nullable=True)

    images: Mapped[list | None] = mapped_column(JSONB, nullable=True)  # type: ignore[type-arg]
    property_type: Mapped[str] = mapped_column(String(32), nullable=False)
    purpose: Mapped[str] = mapped_column(String(32), nullable=False)

    bedrooms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bathrooms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    area: Mapped[float | None] = mapped_column(Numeric(10, 2), nullable=True)
    land_area: Mapped[float | None] = mapped_column(Numeric(12, 2), nullable=True)
    amenities: Mapped[list | None] = mapped_column(JSONB, nullable=True)  # type: ignore[type-arg]

    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_listings_status_created_at", "status", "created_at"),
        Index("ix_listings_purpose_status", "purpose", "status"),
    )


class SponsorshipModel(Base):
    __tablename__ = "sponsored_listings"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    listing_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)

    boost_level: Mapped[int] = mapped_column(Integer, nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    amount_paid: Mapped[float] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    checkout_session_id: Mapped[str | None] = mapped_column(String(256), nullable=True, unique=True)

    sponsored_from: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    sponsored_until: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[str] = mapped_column(_sponsorship_status_enum, nullable=False, index=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expired_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    # No uniqueness on the running sponsorship: the application guards it
    __table_args__ = (
        Index("ix_sponsored_listings_listing_window", "listing_id", "sponsored_until"),
    )
