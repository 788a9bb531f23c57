"""
Sponsorship price matrix: three boost levels by three durations.

Static configuration. The shape (levels 1-3 x 7/15/30 days) is fixed;
amounts are in the sponsorship currency.
"""
from dataclasses import dataclass
from decimal import Decimal

BOOST_LEVELS: tuple[int, ...] = (1, 2, 3)
DURATIONS_DAYS: tuple[int, ...] = (7, 15, 30)


@dataclass(frozen=True)
class SponsorshipTier:
    level: int
    name: str
    prices: dict[int, Decimal]


TIERS: dict[int, SponsorshipTier] = {
    1: SponsorshipTier(
        level=1,
        name="Boost",
        prices={7: Decimal("200000"), 15: Decimal("350000"), 30: Decimal("600000")},
    ),
    2: SponsorshipTier(
        level=2,
        name="Premium",
        prices={7: Decimal("350000"), 15: Decimal("600000"), 30: Decimal("1000000")},
    ),
    3: SponsorshipTier(
        level=3,
        name="VIP",
        prices={7: Decimal("500000"), 15: Decimal("850000"), 30: Decimal("1500000")},
    ),
}


class PriceMatrix:
    """Looks up the price of a (boost level, duration) combination."""

    def __init__(self, tiers: dict[int, SponsorshipTier] = TIERS) -> None:
        self._tiers = tiers

    def price_for(self, boost_level: int, duration_days: int) -> Decimal | None:
        tier = self._tiers.get(boost_level)
        if tier is None:
            return None
        return tier.prices.get(duration_days)

    def tier_name(self, boost_level: int) -> str | None:
        tier = self._tiers.get(boost_level)
        return tier.name if tier else None

    def combinations(self) -> list[tuple[int, int]]:
        return [
            (level, days)
            for level, tier in sorted(self._tiers.items())
            for days in sorted(tier.prices)
        ]
