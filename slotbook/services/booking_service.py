# slotbook/services/booking_service.py
"""
Booking Service for the slot-booking platform.

Owns the booking state machine:

    PENDING -> CANCELLED   (client or provider; slot goes back to AVAILABLE)
    PENDING -> COMPLETED   (provider, or a verified payment; slot is removed)

Creation claims the slot with a guarded AVAILABLE -> BOOKED update. That
update is the only ordering point between concurrent requests for one slot:
exactly one caller moves the row, everyone else sees zero rows affected and
gets a conflict. Every transition runs inside ``BaseService.transaction``,
so the slot change and the booking change commit together or not at all.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import RoleName
from ..core.exceptions import (
    BookingStateException,
    ForbiddenException,
    NotFoundException,
    SlotUnavailableException,
    ValidationException,
)
from ..models.booking import Booking, BookingStatus
from ..models.slot import SlotStatus
from ..models.types import utcnow
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import CallerPrincipal, require_role
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.slot_repository import SlotRepository
from ..repositories.user_repository import UserRepository
from ..schemas.booking import BookingWithParticipants
from .base import BaseService

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
MINUTES_PER_HOUR = Decimal(60)

# Messages for a transition attempted from a terminal status
_TERMINAL_MESSAGES: Dict[str, Dict[str, str]] = {
    "cancel": {
        BookingStatus.CANCELLED.value: "Booking is already cancelled",
        BookingStatus.COMPLETED.value: "Cannot cancel a completed booking",
    },
    "complete": {
        BookingStatus.COMPLETED.value: "Booking is already completed",
        BookingStatus.CANCELLED.value: "Cannot complete a cancelled booking",
    },
}


def parse_final_cost(value: Any) -> Decimal:
    """
    Validate a client-supplied cost.

    Raises:
        ValidationException: Not a finite, non-negative decimal
    """
    if isinstance(value, bool):
        raise ValidationException("Final cost must be a valid number", code="INVALID_FINAL_COST")
    try:
        cost = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationException(
            "Final cost must be a valid number",
            code="INVALID_FINAL_COST",
            details={"final_cost": str(value)},
        ) from exc

    if not cost.is_finite() or cost < 0:
        raise ValidationException(
            "Final cost must be a valid number",
            code="INVALID_FINAL_COST",
            details={"final_cost": str(value)},
        )
    return cost.quantize(CENTS, rounding=ROUND_HALF_UP)


def derive_cost(hourly_rate: Optional[Decimal], duration_minutes: int) -> Decimal:
    """Provider's hourly rate prorated over the slot; no rate means no charge."""
    rate = Decimal(hourly_rate) if hourly_rate is not None else Decimal(0)
    return (rate * Decimal(duration_minutes) / MINUTES_PER_HOUR).quantize(CENTS, rounding=ROUND_HALF_UP)


class BookingService(BaseService):
    """
    Service layer for booking operations.

    Holds no booking or slot state between calls; every decision is made
    against the store.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[BookingRepository] = None,
        slot_repository: Optional[SlotRepository] = None,
        user_repository: Optional[UserRepository] = None,
    ):
        """
        Initialize booking service.

        Args:
            db: Database session
            repository: Optional BookingRepository instance
            slot_repository: Optional SlotRepository instance
            user_repository: Optional UserRepository instance
        """
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)
        self.slot_repository = slot_repository or RepositoryFactory.create_slot_repository(db)
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)

    # Creation

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        actor: CallerPrincipal,
        slot_id: Optional[str],
        final_cost: Any = None,
        description: Optional[str] = None,
    ) -> BookingWithParticipants:
        """
        Reserve an AVAILABLE slot for the calling client.

        Args:
            actor: Caller; must be a client
            slot_id: Slot to reserve
            final_cost: Optional explicit cost; derived from the provider's
                hourly rate when omitted
            description: Optional note for the provider

        Returns:
            The PENDING booking with provider and client profiles

        Raises:
            ForbiddenException: Caller is not a client
            ValidationException: Missing slot id or invalid cost
            NotFoundException: Slot or client profile missing
            SlotUnavailableException: Slot not AVAILABLE, or claimed by a
                concurrent request
        """
        require_role(actor, RoleName.CLIENT)

        if not slot_id or not str(slot_id).strip():
            raise ValidationException("Slot ID is required", code="MISSING_SLOT_ID")

        slot = self.slot_repository.get_with_provider(slot_id)
        if slot is None:
            raise NotFoundException("Slot not found", code="SLOT_NOT_FOUND", details={"slot_id": slot_id})

        if slot.status != SlotStatus.AVAILABLE.value:
            self.logger.warning(f"Booking rejected: slot {slot_id} is {slot.status}")
            raise SlotUnavailableException(slot_id)

        if final_cost is None or (isinstance(final_cost, str) and not final_cost.strip()):
            cost = derive_cost(slot.provider.hourly_rate if slot.provider else None, slot.duration)
        else:
            cost = parse_final_cost(final_cost)

        if self.user_repository.get_profile(actor.user_id) is None:
            raise NotFoundException("Client profile not found", code="CLIENT_NOT_FOUND")

        with self.transaction():
            if not self.slot_repository.mark_booked_if_available(slot_id):
                prometheus_metrics.inc_slot_claim_conflict()
                self.logger.warning(f"Booking rejected: slot {slot_id} was claimed concurrently")
                raise SlotUnavailableException(slot_id)

            try:
                booking = self.repository.create(
                    slot_id=slot.id,
                    client_id=actor.user_id,
                    provider_id=slot.provider_id,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    duration=slot.duration,
                    status=BookingStatus.PENDING.value,
                    final_cost=cost,
                    description=(description or "").strip(),
                )
            except IntegrityError as exc:
                # Unique active-booking index caught a second PENDING row for this slot
                prometheus_metrics.inc_slot_claim_conflict()
                self.logger.warning(f"Booking rejected: slot {slot_id} already has an active booking")
                raise SlotUnavailableException(slot_id) from exc

            booking_id = booking.id

        prometheus_metrics.inc_booking_transition(BookingStatus.PENDING.value)
        self.log_operation(
            "create_booking",
            booking_id=booking_id,
            slot_id=slot_id,
            client_id=actor.user_id,
            final_cost=cost,
        )
        return self._project(booking_id)

    # Transitions

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, actor: CallerPrincipal, booking_id: str) -> BookingWithParticipants:
        """
        Cancel a PENDING booking and release its slot.

        Either participant may cancel. A slot that no longer exists is left
        alone; the booking is still cancelled.

        Raises:
            NotFoundException: Booking missing
            ForbiddenException: Caller is neither the client nor the provider
            BookingStateException: Booking already CANCELLED or COMPLETED
        """
        booking = self._get_or_404(booking_id)

        if actor.user_id not in (booking.client_id, booking.provider_id):
            raise ForbiddenException(
                "You are not authorized to cancel this booking",
                code="NOT_BOOKING_PARTICIPANT",
                details={"booking_id": booking_id},
            )

        self._ensure_pending(booking, "cancel")

        with self.transaction():
            moved = self.repository.transition_status(
                booking_id,
                BookingStatus.CANCELLED,
                cancelled_at=utcnow(),
                cancelled_by_id=actor.user_id,
            )
            if not moved:
                self._raise_lost_transition(booking_id, "cancel")

            released = self.slot_repository.release_if_booked(booking.slot_id)

        prometheus_metrics.inc_booking_transition(BookingStatus.CANCELLED.value)
        self.log_operation(
            "cancel_booking",
            booking_id=booking_id,
            cancelled_by=actor.user_id,
            slot_released=released,
        )
        return self._project(booking_id)

    @BaseService.measure_operation("complete_booking")
    def complete_booking(self, actor: CallerPrincipal, booking_id: str) -> BookingWithParticipants:
        """
        Mark a PENDING booking COMPLETED on behalf of its provider.

        Raises:
            NotFoundException: Booking missing
            ForbiddenException: Caller is not the booking's provider
            BookingStateException: Booking already COMPLETED or CANCELLED
        """
        booking = self._get_or_404(booking_id)

        if booking.provider_id != actor.user_id:
            raise ForbiddenException(
                "Only the booking's provider can complete it",
                code="NOT_BOOKING_PROVIDER",
                details={"booking_id": booking_id},
            )

        self._ensure_pending(booking, "complete")

        with self.transaction():
            if not self.apply_completion(booking):
                self._raise_lost_transition(booking_id, "complete")

        self.log_operation("complete_booking", booking_id=booking_id, provider_id=actor.user_id)
        return self._project(booking_id)

    def apply_completion(self, booking: Booking, **fields: Any) -> bool:
        """
        PENDING -> COMPLETED plus the completed-slot policy.

        Must run inside the caller's transaction. Shared by provider
        completion and payment verification.

        Args:
            booking: Booking to complete
            **fields: Extra booking columns to set in the same update

        Returns:
            False if the booking was no longer PENDING (nothing written)
        """
        moved = self.repository.transition_status(
            booking.id,
            BookingStatus.COMPLETED,
            completed_at=utcnow(),
            **fields,
        )
        if not moved:
            return False

        if settings.retain_completed_slots:
            self.logger.debug(f"Keeping slot {booking.slot_id} for completed booking {booking.id}")
        else:
            removed = self.slot_repository.delete_by_id(booking.slot_id)
            self.logger.debug(f"Removed {removed} slot row(s) for completed booking {booking.id}")

        prometheus_metrics.inc_booking_transition(BookingStatus.COMPLETED.value)
        return True

    # Reads

    @BaseService.measure_operation("get_booking")
    def get_booking(
        self, booking_id: str, actor: Optional[CallerPrincipal] = None
    ) -> BookingWithParticipants:
        """
        Single booking with participant profiles.

        Raises:
            NotFoundException: Booking missing
            ForbiddenException: Reads are restricted and the caller is not a participant
        """
        booking = self._get_or_404(booking_id)

        if (
            settings.restrict_booking_reads
            and actor is not None
            and actor.user_id not in (booking.client_id, booking.provider_id)
        ):
            raise ForbiddenException(
                "You are not authorized to view this booking",
                code="NOT_BOOKING_PARTICIPANT",
                details={"booking_id": booking_id},
            )

        return BookingWithParticipants.model_validate(booking)

    @BaseService.measure_operation("get_my_bookings")
    def get_my_bookings(self, actor: CallerPrincipal) -> List[BookingWithParticipants]:
        """Bookings the caller made (client) or received (provider), newest first."""
        if actor.is_client:
            bookings = self.repository.list_for_client(actor.user_id)
        else:
            bookings = self.repository.list_for_provider(actor.user_id)
        return [BookingWithParticipants.model_validate(booking) for booking in bookings]

    # Helpers

    def _get_or_404(self, booking_id: str) -> Booking:
        booking = self.repository.get_with_participants(booking_id)
        if booking is None:
            raise NotFoundException(
                "Booking not found", code="BOOKING_NOT_FOUND", details={"booking_id": booking_id}
            )
        return booking

    def _ensure_pending(self, booking: Booking, action: str) -> None:
        if booking.is_terminal:
            self.logger.warning(f"Rejected {action} of booking {booking.id}: status is {booking.status}")
            raise BookingStateException(
                booking.id,
                booking.status,
                _TERMINAL_MESSAGES[action].get(booking.status, f"Cannot {action} this booking"),
            )

    def _raise_lost_transition(self, booking_id: str, action: str) -> None:
        """A guarded update moved nothing: report the status that beat us."""
        current = self.repository.get_with_participants(booking_id)
        current_status = current.status if current is not None else "UNKNOWN"
        self.logger.warning(
            f"Rejected {action} of booking {booking_id}: concurrently moved to {current_status}"
        )
        raise BookingStateException(
            booking_id,
            current_status,
            _TERMINAL_MESSAGES[action].get(current_status, f"Cannot {action} this booking"),
        )

    def _project(self, booking_id: str) -> BookingWithParticipants:
        return BookingWithParticipants.model_validate(self._get_or_404(booking_id))


__all__ = ["BookingService", "derive_cost", "parse_final_cost"]
