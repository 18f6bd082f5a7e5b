"""Razorpay-compatible orders client and payment signature helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
import hashlib
import hmac
import json
import logging
from typing import Any, Dict, Optional, Protocol, cast
from uuid import uuid4

import httpx
from pydantic import SecretStr

from ..core.config import settings

logger = logging.getLogger(__name__)

# Orders are created in the currency's smallest unit (paise for INR)
MINOR_UNITS_PER_MAJOR = 100


class PaymentGatewayError(RuntimeError):
    """Raised when the payment gateway rejects a request or cannot be reached."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        *,
        error_body: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_body = error_body


@dataclass(frozen=True)
class GatewayOrder:
    """Order as acknowledged by the gateway."""

    order_id: str
    amount_minor: int
    currency: str
    receipt: str
    status: str = "created"
    notes: Dict[str, str] = field(default_factory=dict)


class PaymentGateway(Protocol):
    def create_order(
        self,
        *,
        amount: Decimal,
        currency: str,
        receipt: str,
        notes: Dict[str, str],
    ) -> GatewayOrder: ...


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount to the integer the gateway expects."""
    minor = (amount * MINOR_UNITS_PER_MAJOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(minor)


def compute_payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    """HMAC-SHA256 hex digest over ``order_id|payment_id``."""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_payment_signature(
    order_id: str, payment_id: str, signature: str, secret: str | SecretStr
) -> bool:
    """Constant-time check of a client-submitted payment signature."""
    secret_value = secret.get_secret_value() if isinstance(secret, SecretStr) else secret
    if not secret_value or not signature:
        return False
    expected = compute_payment_signature(order_id, payment_id, secret_value)
    return hmac.compare_digest(expected, signature.strip())


class RazorpayClient:
    """Thin client for the Razorpay orders API."""

    def __init__(
        self,
        *,
        key_id: str,
        key_secret: str | SecretStr,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        secret_value = (
            key_secret.get_secret_value() if isinstance(key_secret, SecretStr) else key_secret
        )
        if not key_id or not secret_value:
            raise ValueError("Payment gateway key id and secret must be provided")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        # Key id is the username and key secret the password
        self._auth = httpx.BasicAuth(key_id, secret_value)

    def create_order(
        self,
        *,
        amount: Decimal,
        currency: str,
        receipt: str,
        notes: Dict[str, str],
    ) -> GatewayOrder:
        """Create an order for ``amount`` (major units) and return its gateway id."""
        body = {
            "amount": to_minor_units(amount),
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
        }
        payload = self.request("POST", "/orders", json_body=body)
        order_id = payload.get("id")
        if not order_id:
            raise PaymentGatewayError("Gateway order response is missing an id", error_body=payload)
        return GatewayOrder(
            order_id=str(order_id),
            amount_minor=int(payload.get("amount", body["amount"])),
            currency=str(payload.get("currency", currency)),
            receipt=str(payload.get("receipt", receipt)),
            status=str(payload.get("status", "created")),
            notes=dict(payload.get("notes") or notes),
        )

    def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        """Perform a raw gateway request and return the parsed JSON payload."""
        url = f"{self._base_url}{path}"
        with httpx.Client(
            timeout=self._timeout,
            transport=self._transport,
            auth=self._auth,
            headers={"Accept": "application/json"},
        ) as client:
            try:
                response = client.request(method, url, json=json_body)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                error_payload: Any | None
                try:
                    error_payload = exc.response.json()
                except json.JSONDecodeError:
                    error_payload = exc.response.text

                logger.error(
                    "Payment gateway error %s for %s %s: %s",
                    status,
                    method,
                    path,
                    exc.response.text[:500],
                )
                raise PaymentGatewayError(
                    f"Payment gateway responded with status {status}",
                    status_code=status,
                    error_body=error_payload,
                ) from exc
            except httpx.RequestError as exc:
                logger.error("Payment gateway request failure for %s %s: %s", method, path, str(exc))
                raise PaymentGatewayError("Failed to reach payment gateway") from exc

        try:
            return cast(Dict[str, Any], response.json())
        except json.JSONDecodeError as exc:
            logger.error("Invalid JSON from payment gateway for %s %s", method, path)
            raise PaymentGatewayError("Received malformed JSON from payment gateway") from exc


class FakePaymentGateway:
    """In-memory gateway for local development and tests."""

    def __init__(self) -> None:
        self.orders: Dict[str, GatewayOrder] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

    def create_order(
        self,
        *,
        amount: Decimal,
        currency: str,
        receipt: str,
        notes: Dict[str, str],
    ) -> GatewayOrder:
        order = GatewayOrder(
            order_id=f"order_fake_{uuid4().hex[:14]}",
            amount_minor=to_minor_units(amount),
            currency=currency,
            receipt=receipt,
            notes=dict(notes),
        )
        self.orders[order.order_id] = order
        self._logger.debug("Fake order created: %s", order.order_id)
        return order


def build_payment_gateway() -> PaymentGateway:
    """
    Gateway configured from settings.

    Outside production, missing credentials fall back to the in-memory fake.
    """
    if not settings.payment_key_id and settings.environment != "production":
        logger.info("Payment gateway credentials not configured; using FakePaymentGateway")
        return FakePaymentGateway()
    return RazorpayClient(
        key_id=settings.payment_key_id,
        key_secret=settings.payment_key_secret,
        base_url=settings.payment_gateway_base_url,
        timeout=settings.payment_gateway_timeout_seconds,
    )
