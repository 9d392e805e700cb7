"""Payment gateway integration.

Orders paid online start with a gateway-side order (a Razorpay "order")
created before checkout completes. The browser uses the returned descriptor
to open the checkout widget; settlement is outside this service.

``PaymentGateway`` is the contract the API depends on, so tests can swap
in a fake without touching the Razorpay SDK.
"""

import math
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import razorpay
import requests
import structlog
from razorpay.errors import BadRequestError, GatewayError, ServerError

logger = structlog.get_logger(__name__)


class PaymentGatewayError(Exception):
    """The gateway rejected the request or could not be reached."""


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_order(self, amount: int, currency: str, receipt: str) -> Dict[str, Any]:
        """Create a gateway order for ``amount`` minor units."""
        ...

    def close(self) -> None:
        pass


class RazorpayGateway(PaymentGateway):
    def __init__(self, key_id: str, key_secret: str) -> None:
        self.client = razorpay.Client(auth=(key_id, key_secret))

    def create_order(self, amount: int, currency: str, receipt: str) -> Dict[str, Any]:
        try:
            return self.client.order.create(
                data={"amount": amount, "currency": currency, "receipt": receipt}
            )
        except (
            BadRequestError,
            GatewayError,
            ServerError,
            requests.RequestException,
        ) as exc:
            raise PaymentGatewayError(str(exc)) from exc

    def close(self) -> None:
        self.client.session.close()


def to_minor_units(amount: float) -> int:
    minor = amount * 100
    if not math.isfinite(minor):
        raise ValueError("amount must be finite")
    return int(round(minor))


def make_receipt(now: Optional[float] = None) -> str:
    return f"receipt_{int((now if now is not None else time.time()) * 1000)}"


class PaymentInitiator:
    def __init__(self, gateway: PaymentGateway, currency: str = "INR") -> None:
        self.gateway = gateway
        self.currency = currency

    def create_order(self, amount: float) -> Dict[str, Any]:
        """Create a gateway order for ``amount`` major units and return it verbatim.

        Not retried: a second call creates a second gateway order.
        """
        if amount is None or amount <= 0:
            raise ValueError("amount must be positive")
        receipt = make_receipt()
        descriptor = self.gateway.create_order(to_minor_units(amount), self.currency, receipt)
        logger.info("Payment order created", receipt=receipt, gateway_order_id=descriptor.get("id"))
        return descriptor
