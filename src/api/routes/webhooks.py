import hmac

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, status

from src.api.dependencies import get_cancel_checkout_use_case, get_confirm_payment_use_case
from src.api.schemas.sponsorship_schemas import PaymentWebhookPayload, PaymentWebhookResponse
from src.application.errors import SponsorshipNotFoundError, UpstreamUnavailableError
from src.application.use_cases.cancel_sponsorship_checkout import (
    CancelSponsorshipCheckout,
    CancelSponsorshipCheckoutInput,
)
from src.application.use_cases.confirm_sponsorship_payment import (
    ConfirmSponsorshipPayment,
    ConfirmSponsorshipPaymentInput,
)
from src.config import settings

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/webhooks", tags=["webhooks"])

PAID = "paid"


def _verify_secret(provided: str | None) -> None:
    expected = settings.payment_webhook_secret
    if not expected:
        return
    if provided is None or not hmac.compare_digest(provided, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret.")


@router.post("/payments", response_model=PaymentWebhookResponse)
async def payment_event(
    payload: PaymentWebhookPayload,
    webhook_secret: str | None = Header(default=None, alias="X-Webhook-Secret"),
    confirm: ConfirmSponsorshipPayment = Depends(get_confirm_payment_use_case),
    cancel: CancelSponsorshipCheckout = Depends(get_cancel_checkout_use_case),
) -> PaymentWebhookResponse:
    """Called by the payment gateway when a checkout session settles.

    Completed and paid sessions activate the sponsorship; expired or
    cancelled sessions withdraw the pending record. Replays are no-ops.
    """
    _verify_secret(webhook_secret)

    try:
        if payload.type == "checkout.session.completed":
            if payload.payment_status != PAID:
                logger.warning(
                    "payment_not_completed",
                    session_id=payload.session_id,
                    payment_status=payload.payment_status,
                )
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST, detail="Payment not completed."
                )
            confirmed = await confirm.execute(
                ConfirmSponsorshipPaymentInput(session_id=payload.session_id)
            )
            return PaymentWebhookResponse(
                sponsorship_id=confirmed.sponsorship_id,
                status=confirmed.status,
                changed=confirmed.activated,
            )

        cancelled = await cancel.execute(
            CancelSponsorshipCheckoutInput(
                session_id=payload.session_id, reason=payload.type.rsplit(".", 1)[-1]
            )
        )
        return PaymentWebhookResponse(
            sponsorship_id=cancelled.sponsorship_id,
            status=cancelled.status,
            changed=cancelled.cancelled,
        )
    except SponsorshipNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except UpstreamUnavailableError as exc:
        logger.warning(
            "payment_webhook_upstream_unavailable",
            session_id=payload.session_id,
            source=exc.source,
            error=str(exc),
        )
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
