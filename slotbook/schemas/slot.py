# slotbook/schemas/slot.py
"""
Slot projections.

Public listings carry a trimmed provider profile; the owner's listing
carries every booking made against each slot with the client's contact.
"""

from datetime import datetime
from typing import List, Optional

from ..models.booking import BookingStatus
from ..models.slot import SlotStatus
from .base import Money, StandardizedModel


class ProviderSummary(StandardizedModel):
    """Provider profile shown next to public slots."""

    id: str
    name: str
    hourly_rate: Optional[Money] = None
    image: Optional[str] = None


class ClientSummary(StandardizedModel):
    """Client contact shown to the provider."""

    id: str
    name: str
    email: str


class SlotRead(StandardizedModel):
    id: str
    provider_id: str
    start_time: datetime
    end_time: datetime
    duration: int
    status: SlotStatus
    created_at: datetime


class SlotWithProvider(SlotRead):
    """Slot as listed publicly for a provider."""

    provider: ProviderSummary


class SlotBooking(StandardizedModel):
    """A booking as seen from the slot it was made against."""

    id: str
    client_id: str
    status: BookingStatus
    final_cost: Money
    description: str
    payment_status: str
    created_at: datetime
    client: ClientSummary


class SlotWithBookings(SlotRead):
    """Slot as listed to its owner, with active and past bookings."""

    bookings: List[SlotBooking] = []
