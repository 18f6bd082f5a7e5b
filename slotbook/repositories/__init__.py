# slotbook/repositories/__init__.py
"""
Repository Pattern Implementation for the slot-booking platform

This package is the data-store adapter: services talk to the store only
through these repositories, and repositories never commit.

Key Components:
- BaseRepository: Model binding and flush-only creation shared by all repositories
- RepositoryFactory: Factory for creating repository instances
- SlotRepository: Slot listings and guarded slot transitions
- BookingRepository: Booking reads and guarded booking transitions
- PaymentRepository: Gateway order records
- UserRepository: Provider/client profiles

Usage:
    from slotbook.repositories import RepositoryFactory

    # In a service:
    repository = RepositoryFactory.create_slot_repository(db)
    claimed = repository.mark_booked_if_available(slot_id)
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .factory import RepositoryFactory
from .payment_repository import PaymentRepository
from .slot_repository import SlotRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "PaymentRepository",
    "RepositoryFactory",
    "SlotRepository",
    "UserRepository",
]
