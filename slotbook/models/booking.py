# slotbook/models/booking.py
"""
Booking model for the slot-booking platform.

Represents a client's reservation against a provider's slot. Bookings keep
a snapshot of the slot's start/end/duration taken at creation, so they stay
meaningful after the slot row is deleted (completion or expiry sweep).
Bookings are never physically deleted by the core.
"""

from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from .types import UTCDateTime, utcnow


class BookingStatus(str, Enum):
    """Booking lifecycle statuses. CANCELLED and COMPLETED are terminal."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_BOOKING_STATUSES = frozenset({BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value})


class Booking(Base):
    """
    Client reservation with its own lifecycle.

    Status moves PENDING -> CANCELLED or PENDING -> COMPLETED, and every
    move is applied with an UPDATE guarded on status = PENDING.
    """

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    # Slot reference without FK: the slot may be deleted while the booking lives on
    slot_id = Column(String(26), nullable=False, index=True)
    client_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    provider_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)

    # Slot snapshot (preserved for history)
    start_time = Column(UTCDateTime(), nullable=False)
    end_time = Column(UTCDateTime(), nullable=False)
    duration = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    final_cost = Column(Numeric(10, 2), nullable=False, default=0)
    description = Column(Text, nullable=False, default="")
    payment_status = Column(String(20), nullable=False, default="PENDING")

    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime(), nullable=True, onupdate=utcnow)
    completed_at = Column(UTCDateTime(), nullable=True)
    cancelled_at = Column(UTCDateTime(), nullable=True)
    cancelled_by_id = Column(String(64), nullable=True)

    client = relationship("User", foreign_keys=[client_id])
    provider = relationship("User", foreign_keys=[provider_id])
    payment = relationship(
        "BookingPayment", back_populates="booking", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'COMPLETED', 'CANCELLED')",
            name="ck_bookings_status",
        ),
        CheckConstraint(
            "payment_status IN ('PENDING', 'COMPLETED', 'FAILED')",
            name="ck_bookings_payment_status",
        ),
        CheckConstraint("final_cost >= 0", name="ck_bookings_final_cost_non_negative"),
        Index("ix_bookings_slot_status", "slot_id", "status"),
        # At most one active booking per slot, backing up the guarded slot UPDATE
        Index(
            "uq_bookings_slot_pending",
            "slot_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_BOOKING_STATUSES

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, slot_id={self.slot_id}, status={self.status})>"
