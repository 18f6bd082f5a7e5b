"""
Database models for the slot-booking platform.

- User: public provider/client profile
- Slot: provider availability (AVAILABLE/BOOKED)
- Booking: client reservation with slot snapshot
- BookingPayment: gateway order and verification record
"""

from .booking import TERMINAL_BOOKING_STATUSES, Booking, BookingStatus
from .payment import BookingPayment, PaymentStatus
from .slot import Slot, SlotStatus
from .user import User

__all__ = [
    "Booking",
    "BookingPayment",
    "BookingStatus",
    "PaymentStatus",
    "Slot",
    "SlotStatus",
    "TERMINAL_BOOKING_STATUSES",
    "User",
]
