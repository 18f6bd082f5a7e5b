# slotbook/core/enums.py
"""
Core enums for the slot-booking platform.

Status enums for persisted rows live next to their models
(``SlotStatus``, ``BookingStatus``, ``PaymentStatus``).
"""

from enum import Enum


class RoleName(str, Enum):
    """
    Roles supplied by the identity provider.

    Providers publish slots and complete bookings; clients book and pay.
    """

    CLIENT = "CLIENT"
    PROVIDER = "PROVIDER"


class ProviderCategory(str, Enum):
    """Service category shown on a provider's public profile."""

    HEALTH = "HEALTH"
    EDUCATION = "EDUCATION"
    HOME = "HOME"
    BEAUTY = "BEAUTY"
    FITNESS = "FITNESS"
    OTHER = "OTHER"
