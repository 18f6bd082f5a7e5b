"""External service integrations for the slot-booking platform."""

from .payment_gateway import (
    FakePaymentGateway,
    GatewayOrder,
    PaymentGateway,
    PaymentGatewayError,
    RazorpayClient,
    build_payment_gateway,
    compute_payment_signature,
    verify_payment_signature,
)

__all__ = [
    "FakePaymentGateway",
    "GatewayOrder",
    "PaymentGateway",
    "PaymentGatewayError",
    "RazorpayClient",
    "build_payment_gateway",
    "compute_payment_signature",
    "verify_payment_signature",
]
