# slotbook/schemas/payment.py
"""Payment order and verification results."""

from datetime import datetime
from typing import Optional

from ..models.booking import BookingStatus
from ..models.payment import PaymentStatus
from .base import Money, StandardizedModel


class PaymentOrder(StandardizedModel):
    """Gateway order the client pays against."""

    order_id: str
    booking_id: str
    amount: Money
    currency: str
    receipt: str
    status: PaymentStatus


class PaymentVerification(StandardizedModel):
    """Outcome of validating a client-submitted payment signature."""

    success: bool = True
    order_id: str
    payment_id: str
    booking_id: str
    booking_status: BookingStatus
    already_completed: bool = False


class PaymentRead(StandardizedModel):
    id: str
    booking_id: str
    order_id: str
    payment_id: Optional[str] = None
    amount: Money
    currency: str
    status: PaymentStatus
    failure_reason: Optional[str] = None
    paid_at: Optional[datetime] = None
