"""initial schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2024-01-01 00:00:00.000000
"""
from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

from alembic import op

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    sponsorship_status = sa.Enum(
        "pending",
        "active",
        "expired",
        "cancelled",
        name="sponsorship_status",
    )
    sponsorship_status.create(op.get_bind(), checkfirst=True)

    # Listings, owned by the listing service and read by the feed
    op.create_table(
        "listings",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("title", sa.String(512), nullable=False),
        sa.Column("price", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(8), nullable=False, server_default="XOF"),
        # Location
        sa.Column("city", sa.String(256), nullable=False, server_default=""),
        sa.Column("neighborhood", sa.String(256), nullable=True),
        sa.Column("country", sa.String(8), nullable=True),
        sa.Column("longitude", sa.Numeric(9, 6), nullable=True),
        sa.Column("latitude", sa.Numeric(9, 6), nullable=True),
        # Details
        sa.Column("images", JSONB, nullable=True),
        sa.Column("property_type", sa.String(32), nullable=False),
        sa.Column("purpose", sa.String(32), nullable=False),
        sa.Column("bedrooms", sa.Integer(), nullable=True),
        sa.Column("bathrooms", sa.Integer(), nullable=True),
        sa.Column("area", sa.Numeric(10, 2), nullable=True),
        sa.Column("land_area", sa.Numeric(12, 2), nullable=True),
        sa.Column("amenities", JSONB, nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="active"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )

    op.create_index("ix_listings_user_id", "listings", ["user_id"])
    op.create_index("ix_listings_country", "listings", ["country"])
    op.create_index("ix_listings_status_created_at", "listings", ["status", "created_at"])
    op.create_index("ix_listings_purpose_status", "listings", ["purpose", "status"])

    # Paid boosts; a row is pending until its checkout is confirmed
    op.create_table(
        "sponsored_listings",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "listing_id",
            UUID(as_uuid=True),
            sa.ForeignKey("listings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("boost_level", sa.Integer(), nullable=False),
        sa.Column("duration_days", sa.Integer(), nullable=False),
        sa.Column("amount_paid", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(8), nullable=False),
        sa.Column("checkout_session_id", sa.String(256), nullable=True, unique=True),
        sa.Column("sponsored_from", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sponsored_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sponsorship_status, nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expired_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint("boost_level BETWEEN 1 AND 3", name="ck_sponsored_listings_boost_level"),
    )

    op.create_index("ix_sponsored_listings_listing_id", "sponsored_listings", ["listing_id"])
    op.create_index("ix_sponsored_listings_status", "sponsored_listings", ["status"])
    op.create_index(
        "ix_sponsored_listings_listing_window",
        "sponsored_listings",
        ["listing_id", "sponsored_until"],
    )


def downgrade() -> None:
    op.drop_table("sponsored_listings")
    op.drop_table("listings")
    sa.Enum(name="sponsorship_status").drop(op.get_bind(), checkfirst=True)
