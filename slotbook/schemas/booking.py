# slotbook/schemas/booking.py
"""
Booking projections.

Bookings carry their own start/end/duration snapshot, so these projections
never need the slot row, which may already be gone.
"""

from datetime import datetime
from typing import Optional

from ..models.booking import BookingStatus
from .base import Money, StandardizedModel
from .slot import ClientSummary


class ProviderContact(StandardizedModel):
    """Provider details returned to the client who booked."""

    id: str
    name: str
    email: str
    phone_number: Optional[str] = None
    hourly_rate: Optional[Money] = None


class BookingRead(StandardizedModel):
    id: str
    slot_id: str
    client_id: str
    provider_id: str

    # Snapshot of the slot at booking time
    start_time: datetime
    end_time: datetime
    duration: int

    status: BookingStatus
    final_cost: Money
    description: str
    payment_status: str

    created_at: datetime
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by_id: Optional[str] = None


class BookingWithParticipants(BookingRead):
    """Booking with both participants' profiles."""

    client: ClientSummary
    provider: ProviderContact
