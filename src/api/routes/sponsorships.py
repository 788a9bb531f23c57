import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, status

from src.api.dependencies import get_purchase_sponsorship_use_case
from src.api.schemas.sponsorship_schemas import CheckoutResponse, PurchaseSponsorshipRequest
from src.application.errors import (
    ListingNotFoundError,
    SponsorshipConflictError,
    SponsorshipValidationError,
    UpstreamUnavailableError,
)
from src.application.use_cases.purchase_sponsorship import (
    PurchaseSponsorship,
    PurchaseSponsorshipInput,
)

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/sponsorships", tags=["sponsorships"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=CheckoutResponse)
async def purchase_sponsorship(
    body: PurchaseSponsorshipRequest,
    user_id: str = Header(alias="X-User-Id", min_length=1),
    use_case: PurchaseSponsorship = Depends(get_purchase_sponsorship_use_case),
) -> CheckoutResponse:
    """Start a paid checkout that boosts one of the caller's listings."""
    try:
        result = await use_case.execute(
            PurchaseSponsorshipInput(
                listing_id=body.listing_id,
                boost_level=body.boost_level,
                duration_days=body.duration_days,
                requester_id=user_id,
            )
        )
    except ListingNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except SponsorshipValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    except SponsorshipConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": str(exc),
                "sponsored_until": exc.sponsored_until.isoformat(),
            },
        )
    except UpstreamUnavailableError as exc:
        logger.warning("sponsorship_upstream_unavailable", source=exc.source, error=str(exc))
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))

    return CheckoutResponse(
        sponsorship_id=result.sponsorship_id,
        url=result.checkout_url,
        session_id=result.session_id,
        boost_level=result.boost_level,
        duration_days=result.duration_days,
        price_amount=result.price_amount,
        currency=result.currency,
        sponsored_until=result.sponsored_until,
    )
