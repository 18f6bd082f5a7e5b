# slotbook/models/slot.py
"""
Availability slot published by a provider.

A slot is either AVAILABLE or BOOKED. The flip AVAILABLE -> BOOKED is only
ever done with a status-guarded UPDATE so at most one booking can claim it.
"""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from .types import UTCDateTime, utcnow


class SlotStatus(str, Enum):
    """Slot availability statuses."""

    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"


class Slot(Base):
    """
    Provider-published unit of bookable time.

    Bookings reference slots by id without a foreign key: completing a booking
    or sweeping an expired slot deletes the row while the booking survives
    with its own time snapshot.
    """

    __tablename__ = "slots"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    provider_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    start_time = Column(UTCDateTime(), nullable=False)
    end_time = Column(UTCDateTime(), nullable=False)
    duration = Column(Integer, nullable=False)  # minutes

    status = Column(String(20), nullable=False, default=SlotStatus.AVAILABLE.value)

    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime(), nullable=True, onupdate=utcnow)

    provider = relationship("User", foreign_keys=[provider_id], lazy="joined")
    bookings = relationship(
        "Booking",
        primaryjoin="Slot.id == foreign(Booking.slot_id)",
        order_by="Booking.created_at.desc()",
        viewonly=True,
    )

    __table_args__ = (
        CheckConstraint("status IN ('AVAILABLE', 'BOOKED')", name="ck_slots_status"),
        CheckConstraint("end_time > start_time", name="ck_slots_time_order"),
        CheckConstraint("duration > 0", name="ck_slots_duration_positive"),
        Index("ix_slots_provider_status_start", "provider_id", "status", "start_time"),
        Index("ix_slots_end_time", "end_time"),
    )

    def __repr__(self) -> str:
        return f"<Slot(id={self.id}, provider_id={self.provider_id}, status={self.status})>"
