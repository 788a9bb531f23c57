"""
Composite feed ordering: sponsored listings first, then newest first.

Pure and synchronous. The caller resolves which sponsorships are effective
at the request instant and passes them in, so repeated calls within one
request rank identically.
"""
from collections.abc import Mapping, Sequence
from functools import cmp_to_key
from uuid import UUID

from src.domain.entities.listing import Listing
from src.domain.entities.sponsorship import Sponsorship


def _cmp(a, b) -> int:  # type: ignore[no-untyped-def]
    return (a > b) - (a < b)


def compare_listings(
    a: Listing,
    b: Listing,
    sponsorships: Mapping[UUID, Sponsorship],
) -> int:
    """
    Negative when ``a`` ranks before ``b``, positive when after, zero on a tie.

    1. Both sponsored: higher boost level first, then the later
       ``sponsored_from`` first.
    2. Exactly one sponsored: the sponsored one first, whatever its level.
    3. Neither sponsored: later ``created_at`` first.
    """
    sa = sponsorships.get(a.id)
    sb = sponsorships.get(b.id)

    if sa is not None and sb is not None:
        by_level = _cmp(sb.boost_level, sa.boost_level)
        if by_level:
            return by_level
        return _cmp(sb.sponsored_from, sa.sponsored_from)

    if sa is not None:
        return -1
    if sb is not None:
        return 1

    return _cmp(b.created_at, a.created_at)


def rank(
    listings: Sequence[Listing],
    sponsorships: Mapping[UUID, Sponsorship],
) -> list[Listing]:
    """Return ``listings`` in feed order. Ties keep their input order."""
    # list.sort is stable, so equal keys keep relative order
    return sorted(listings, key=cmp_to_key(lambda a, b: compare_listings(a, b, sponsorships)))
