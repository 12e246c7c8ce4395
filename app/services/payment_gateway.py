import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import razorpay
import requests
from razorpay.errors import BadRequestError, GatewayError, ServerError, SignatureVerificationError

from app.config import settings
from app.exceptions import InvalidInput, UpstreamFailure, UpstreamRejected

logger = logging.getLogger(__name__)


@dataclass
class CheckoutHandle:
    gateway_reference: str   # razorpay order id
    amount: float
    currency: str
    key_id: str


@dataclass
class GatewayVerification:
    status: str  # success | failed | pending
    transaction_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status == "success"


class RazorpayGateway:
    name = "razorpay"

    def __init__(self, key_id: str, key_secret: str, webhook_secret: str = ""):
        self.key_id = key_id
        self.webhook_secret = webhook_secret
        self.client = razorpay.Client(auth=(key_id, key_secret))

    def initialize(self, *, amount: float, payer: Dict[str, Any], reference: str) -> CheckoutHandle:
        """Open a gateway order the client completes in the checkout widget."""
        try:
            gateway_order = self.client.order.create(
                {
                    "amount": int(round(amount * 100)),  # paise
                    "currency": settings.CURRENCY,
                    "receipt": reference,
                    "notes": {
                        "tx_ref": reference,
                        "user_id": payer.get("id"),
                        "name": payer.get("name"),
                        "phone": payer.get("phone"),
                    },
                }
            )
        except BadRequestError as e:
            logger.warning(f"Razorpay rejected order for {reference}: {e}")
            raise UpstreamRejected("Failed to initialize payment")
        except (ServerError, GatewayError, requests.RequestException):
            logger.exception(f"Razorpay unavailable while initializing {reference}")
            raise UpstreamFailure()

        return CheckoutHandle(
            gateway_reference=gateway_order["id"],
            amount=amount,
            currency=settings.CURRENCY,
            key_id=self.key_id,
        )

    def verify(self, gateway_reference: str) -> GatewayVerification:
        """
        Ask the gateway how the order's payment attempts ended.

        A captured attempt is a success. Anything else stays pending: a failed
        attempt does not close a Razorpay order, the customer can retry in the
        same checkout and a later attempt may still be captured.
        """
        try:
            response = self.client.order.payments(gateway_reference)
        except BadRequestError as e:
            # covers bad credentials and unknown ids; not a customer decline
            logger.error(f"Razorpay refused verification for {gateway_reference}: {e}")
            raise UpstreamRejected("Payment provider rejected the verification request")
        except (ServerError, GatewayError, requests.RequestException):
            logger.exception(f"Razorpay unavailable while verifying {gateway_reference}")
            raise UpstreamFailure()

        attempts = response.get("items", [])

        for attempt in attempts:
            if attempt.get("status") == "captured":
                return GatewayVerification(
                    status="success",
                    transaction_id=attempt.get("id"),
                    data=attempt,
                )

        return GatewayVerification(
            status="pending",
            data={
                "count": len(attempts),
                "statuses": [a.get("status") for a in attempts],
            },
        )

    def verify_webhook_signature(self, body: str, signature: str) -> None:
        try:
            self.client.utility.verify_webhook_signature(
                body, signature, self.webhook_secret
            )
        except SignatureVerificationError:
            raise InvalidInput("Invalid webhook signature")


payment_gateway = RazorpayGateway(
    key_id=settings.RAZORPAY_KEY_ID,
    key_secret=settings.RAZORPAY_KEY_SECRET,
    webhook_secret=settings.RAZORPAY_WEBHOOK_SECRET,
)


def get_payment_gateway() -> RazorpayGateway:
    return payment_gateway
