from enum import Enum


class PropertyType(str, Enum):
    APARTMENT = "apartment"
    HOUSE = "house"
    LAND = "land"
    COMMERCIAL = "commercial"


class ListingPurpose(str, Enum):
    RENT = "rent"
    SALE = "sale"
    COMMERCIAL = "commercial"


class ListingStatus(str, Enum):
    """Publication state of a listing, owned by the listing service."""

    DRAFT = "draft"
    ACTIVE = "active"
    INACTIVE = "inactive"
    SOLD = "sold"

    @property
    def is_public(self) -> bool:
        return self is ListingStatus.ACTIVE


class SearchMode(str, Enum):
    """Feed filter chosen by the caller."""

    RENT = "rent"
    BUY = "buy"
    COMMERCIAL = "commercial"


class OwnerKind(str, Enum):
    INDIVIDUAL = "individual"
    AGENCY = "agency"
    BROKER = "broker"
