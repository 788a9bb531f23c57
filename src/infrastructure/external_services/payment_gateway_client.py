"""HTTP client for the hosted-checkout payment gateway."""
from decimal import Decimal

import httpx
import structlog

from src.application.interfaces.payment_gateway import CheckoutSession, PaymentGateway
from src.config import settings

logger = structlog.get_logger(__name__)


class PaymentGatewayError(Exception):
    pass


class HttpPaymentGateway(PaymentGateway):
    """Thin HTTP wrapper around the gateway's checkout-session endpoint."""

    def __init__(
        self,
        base_url: str = settings.payment_gateway_url,
        api_key: str = settings.payment_gateway_api_key,
        success_url: str = settings.payment_success_url,
        cancel_url: str = settings.payment_cancel_url,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._success_url = success_url
        self._cancel_url = cancel_url
        self._transport = transport
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    async def create_checkout(
        self,
        amount: Decimal,
        currency: str,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        """
        POST /checkout/sessions → {"id": "...", "url": "..."}
        """
        payload = {
            "mode": "payment",
            "amount": str(amount),
            "currency": currency,
            "success_url": self._success_url,
            "cancel_url": self._cancel_url,
            "metadata": metadata,
        }

        async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
            try:
                response = await client.post(
                    f"{self._base_url}/checkout/sessions",
                    json=payload,
                    headers=self._headers,
                )
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "checkout_request_failed",
                    status_code=exc.response.status_code,
                    response=exc.response.text,
                )
                raise PaymentGatewayError(
                    f"Payment gateway returned {exc.response.status_code}: {exc.response.text}"
                ) from exc
            except httpx.RequestError as exc:
                logger.error("payment_gateway_connection_failed", error=str(exc))
                raise PaymentGatewayError(f"Failed to reach payment gateway: {exc}") from exc

        logger.info(
            "checkout_session_created",
            session_id=data.get("id"),
            listing_id=metadata.get("listing_id"),
        )
        return CheckoutSession(url=data["url"], session_id=data["id"])
