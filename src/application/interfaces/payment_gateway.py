from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class CheckoutSession:
    url: str
    session_id: str


class PaymentGateway(ABC):
    """Port for opening hosted checkout sessions."""

    @abstractmethod
    async def create_checkout(
        self,
        amount: Decimal,
        currency: str,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        ...
