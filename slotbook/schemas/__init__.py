# slotbook/schemas/__init__.py
"""
Pydantic projections returned by the slot-booking services.
"""

from .base import Money, StandardizedModel
from .booking import BookingRead, BookingWithParticipants, ProviderContact
from .payment import PaymentOrder, PaymentRead, PaymentVerification
from .slot import (
    ClientSummary,
    ProviderSummary,
    SlotBooking,
    SlotRead,
    SlotWithBookings,
    SlotWithProvider,
)

__all__ = [
    "BookingRead",
    "BookingWithParticipants",
    "ClientSummary",
    "Money",
    "PaymentOrder",
    "PaymentRead",
    "PaymentVerification",
    "ProviderContact",
    "ProviderSummary",
    "SlotBooking",
    "SlotRead",
    "SlotWithBookings",
    "SlotWithProvider",
    "StandardizedModel",
]
