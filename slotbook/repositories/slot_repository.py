# slotbook/repositories/slot_repository.py
"""
Slot Repository for the slot-booking platform

Implements data access for provider availability slots:
- Public listing by provider and status
- Owner listing with attached bookings
- Status-guarded transitions (AVAILABLE <-> BOOKED)
- Status-guarded and expiry-based deletes

Every state change here is a single conditional statement whose WHERE
clause carries the expected current status. Callers check the returned
row count; zero means another request changed the slot first.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload, selectinload

from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from ..models.slot import Slot, SlotStatus
from ..models.types import utcnow
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SlotRepository(BaseRepository[Slot]):
    """Repository for slot data access and guarded slot transitions."""

    def __init__(self, db: Session):
        super().__init__(db, Slot)
        self.logger = logging.getLogger(__name__)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(joinedload(Slot.provider))

    def get_with_provider(self, slot_id: str) -> Optional[Slot]:
        """Fresh read of a slot and its provider profile."""
        try:
            return (
                self._apply_eager_loading(self.db.query(Slot))
                .filter(Slot.id == slot_id)
                .populate_existing()
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting slot {slot_id}: {str(e)}")
            raise RepositoryException(f"Failed to get slot: {str(e)}") from e

    def list_for_provider(self, provider_id: str, status: str) -> List[Slot]:
        """Slots of one provider in one status, earliest first."""
        try:
            return (
                self._apply_eager_loading(self.db.query(Slot))
                .filter(Slot.provider_id == provider_id, Slot.status == status)
                .order_by(Slot.start_time.asc(), Slot.id.asc())
                .populate_existing()
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing slots for provider {provider_id}: {str(e)}")
            raise RepositoryException(f"Failed to list slots: {str(e)}") from e

    def list_owned_with_bookings(self, provider_id: str) -> List[Slot]:
        """All of a provider's slots, latest first, with bookings and their clients."""
        try:
            return (
                self.db.query(Slot)
                .options(selectinload(Slot.bookings).joinedload(Booking.client))
                .filter(Slot.provider_id == provider_id)
                .order_by(Slot.start_time.desc(), Slot.id.desc())
                .populate_existing()
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing owned slots for {provider_id}: {str(e)}")
            raise RepositoryException(f"Failed to list owned slots: {str(e)}") from e

    # Guarded transitions

    def _transition(self, slot_id: str, from_status: str, to_status: str) -> bool:
        try:
            updated = (
                self.db.query(Slot)
                .filter(Slot.id == slot_id, Slot.status == from_status)
                .update(
                    {Slot.status: to_status, Slot.updated_at: utcnow()},
                    synchronize_session=False,
                )
            )
            return updated == 1
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error moving slot {slot_id} from {from_status} to {to_status}: {str(e)}"
            )
            raise RepositoryException(f"Failed to update slot status: {str(e)}") from e

    def mark_booked_if_available(self, slot_id: str) -> bool:
        """
        Claim a slot for a booking.

        Returns:
            True if this call flipped AVAILABLE to BOOKED, False if the slot
            was missing or no longer AVAILABLE
        """
        return self._transition(slot_id, SlotStatus.AVAILABLE.value, SlotStatus.BOOKED.value)

    def release_if_booked(self, slot_id: str) -> bool:
        """Return a BOOKED slot to AVAILABLE. A missing slot is not an error."""
        return self._transition(slot_id, SlotStatus.BOOKED.value, SlotStatus.AVAILABLE.value)

    # Deletes

    def delete_if_available(self, slot_id: str) -> bool:
        """Delete a slot only while it is still AVAILABLE."""
        try:
            deleted = (
                self.db.query(Slot)
                .filter(Slot.id == slot_id, Slot.status == SlotStatus.AVAILABLE.value)
                .delete(synchronize_session=False)
            )
            return deleted == 1
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting slot {slot_id}: {str(e)}")
            raise RepositoryException(f"Failed to delete slot: {str(e)}") from e

    def delete_by_id(self, slot_id: str) -> int:
        """Delete a slot regardless of status. Returns the number of rows removed."""
        try:
            return int(
                self.db.query(Slot).filter(Slot.id == slot_id).delete(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting slot {slot_id}: {str(e)}")
            raise RepositoryException(f"Failed to delete slot: {str(e)}") from e

    def delete_expired(self, now: datetime, include_booked: bool = False) -> int:
        """
        Delete slots whose end time has passed.

        Args:
            now: Reference instant; slots with end_time < now are removed
            include_booked: Also remove expired BOOKED slots

        Returns:
            Number of deleted slots
        """
        try:
            query = self.db.query(Slot).filter(Slot.end_time < now)
            if not include_booked:
                query = query.filter(Slot.status == SlotStatus.AVAILABLE.value)
            return int(query.delete(synchronize_session=False))
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting expired slots: {str(e)}")
            raise RepositoryException(f"Failed to delete expired slots: {str(e)}") from e
