# slotbook/services/slot_service.py
"""
Slot Service for the slot-booking platform.

Handles the provider side of availability:
- Publishing slots (start, end, duration)
- Public listing of a provider's slots by status
- The owner's listing with bookings attached
- Deleting an unbooked slot

A slot only ever leaves AVAILABLE through BookingService; deletes here are
guarded on AVAILABLE so they cannot race a booking.
"""

from datetime import datetime, timezone
import logging
from typing import Any, List, Optional, Union

from sqlalchemy.orm import Session

from ..core.enums import RoleName
from ..core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..models.slot import SlotStatus
from ..principal import CallerPrincipal, require_role
from ..repositories.factory import RepositoryFactory
from ..repositories.slot_repository import SlotRepository
from ..repositories.user_repository import UserRepository
from ..schemas.slot import SlotRead, SlotWithBookings, SlotWithProvider
from .base import BaseService

logger = logging.getLogger(__name__)


def parse_timestamp(value: Any, field_name: str) -> datetime:
    """Accept an aware/naive datetime or an ISO-8601 string; return aware UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        candidate = value.strip()
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError as exc:
            raise ValidationException(
                f"{field_name} must be an ISO-8601 timestamp",
                code="INVALID_TIMESTAMP",
                details={"field": field_name},
            ) from exc
    else:
        raise ValidationException(
            f"{field_name} must be an ISO-8601 timestamp",
            code="INVALID_TIMESTAMP",
            details={"field": field_name},
        )

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_duration(value: Any) -> int:
    """Whole minutes from an int or an integer string."""
    if isinstance(value, bool):
        raise ValidationException("duration must be a whole number of minutes", code="INVALID_DURATION")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationException("duration must be a whole number of minutes", code="INVALID_DURATION")


class SlotService(BaseService):
    """Service layer for provider slot management."""

    def __init__(
        self,
        db: Session,
        repository: Optional[SlotRepository] = None,
        user_repository: Optional[UserRepository] = None,
    ):
        """
        Initialize slot service.

        Args:
            db: Database session
            repository: Optional SlotRepository instance
            user_repository: Optional UserRepository instance
        """
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_slot_repository(db)
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)

    @BaseService.measure_operation("create_slot")
    def create_slot(
        self,
        actor: CallerPrincipal,
        start_time: Union[datetime, str, None],
        end_time: Union[datetime, str, None],
        duration: Union[int, str, None],
    ) -> SlotRead:
        """
        Publish a new AVAILABLE slot owned by the calling provider.

        Raises:
            ForbiddenException: Caller is not a provider
            ValidationException: Missing fields, end not after start, or a
                duration that does not match the interval
            NotFoundException: The provider has no profile
        """
        require_role(actor, RoleName.PROVIDER)

        missing = [
            name
            for name, value in (("start_time", start_time), ("end_time", end_time), ("duration", duration))
            if value is None or (isinstance(value, str) and not value.strip())
        ]
        if missing:
            raise ValidationException(
                "Start time, end time, and duration are required",
                code="MISSING_FIELDS",
                details={"missing": missing},
            )

        start = parse_timestamp(start_time, "start_time")
        end = parse_timestamp(end_time, "end_time")
        minutes = parse_duration(duration)

        if end <= start:
            raise ValidationException(
                "End time must be after start time",
                code="INVALID_TIME_RANGE",
                details={"start_time": start.isoformat(), "end_time": end.isoformat()},
            )

        interval_seconds = (end - start).total_seconds()
        if interval_seconds % 60 or minutes != int(interval_seconds // 60):
            raise ValidationException(
                "Duration must equal the minutes between start and end time",
                code="DURATION_MISMATCH",
                details={"duration": minutes, "interval_minutes": interval_seconds / 60},
            )

        if self.user_repository.get_profile(actor.user_id, role=RoleName.PROVIDER.value) is None:
            raise NotFoundException("Provider profile not found", code="PROVIDER_NOT_FOUND")

        with self.transaction():
            slot = self.repository.create(
                provider_id=actor.user_id,
                start_time=start,
                end_time=end,
                duration=minutes,
                status=SlotStatus.AVAILABLE.value,
            )

        self.log_operation("create_slot", slot_id=slot.id, provider_id=actor.user_id)
        return SlotRead.model_validate(slot)

    @BaseService.measure_operation("list_slots")
    def list_slots(
        self,
        provider_id: Optional[str],
        status: Union[SlotStatus, str, None] = SlotStatus.AVAILABLE,
    ) -> List[SlotWithProvider]:
        """
        Public listing of one provider's slots, earliest first.

        Raises:
            ValidationException: Blank provider id or unknown status
        """
        if not provider_id or not str(provider_id).strip():
            raise ValidationException("Provider ID is required", code="MISSING_PROVIDER_ID")

        raw_status = status.value if isinstance(status, SlotStatus) else (status or SlotStatus.AVAILABLE.value)
        try:
            status_value = SlotStatus(str(raw_status).strip().upper()).value
        except ValueError as exc:
            raise ValidationException(
                "Status must be AVAILABLE or BOOKED",
                code="INVALID_STATUS",
                details={"status": raw_status},
            ) from exc

        slots = self.repository.list_for_provider(provider_id, status_value)
        return [SlotWithProvider.model_validate(slot) for slot in slots]

    @BaseService.measure_operation("list_own_slots")
    def list_own_slots(self, actor: CallerPrincipal) -> List[SlotWithBookings]:
        """The calling provider's slots, latest first, with every booking made on them."""
        require_role(actor, RoleName.PROVIDER)
        slots = self.repository.list_owned_with_bookings(actor.user_id)
        return [SlotWithBookings.model_validate(slot) for slot in slots]

    @BaseService.measure_operation("delete_slot")
    def delete_slot(self, actor: CallerPrincipal, slot_id: str) -> None:
        """
        Delete an AVAILABLE slot owned by the caller.

        Raises:
            ForbiddenException: Caller is not a provider or not the owner
            NotFoundException: Slot does not exist
            ConflictException: Slot is BOOKED (or became BOOKED concurrently)
        """
        require_role(actor, RoleName.PROVIDER)

        slot = self.repository.get_with_provider(slot_id)
        if slot is None:
            raise NotFoundException("Slot not found", code="SLOT_NOT_FOUND", details={"slot_id": slot_id})

        if slot.provider_id != actor.user_id:
            raise ForbiddenException(
                "You can only delete your own slots",
                code="NOT_SLOT_OWNER",
                details={"slot_id": slot_id},
            )

        if slot.status == SlotStatus.BOOKED.value:
            raise ConflictException(
                "Cannot delete a booked slot", code="SLOT_BOOKED", details={"slot_id": slot_id}
            )

        with self.transaction():
            if not self.repository.delete_if_available(slot_id):
                self.logger.warning(f"Slot {slot_id} was booked before it could be deleted")
                raise ConflictException(
                    "Cannot delete a booked slot", code="SLOT_BOOKED", details={"slot_id": slot_id}
                )

        self.log_operation("delete_slot", slot_id=slot_id, provider_id=actor.user_id)
