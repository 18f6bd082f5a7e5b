# slotbook/repositories/booking_repository.py
"""
Booking Repository for the slot-booking platform

Implements data access for bookings:
- Booking creation (integrity errors surfaced for conflict handling)
- Participant-loaded reads for projections
- Client and provider booking lists
- Status-guarded lifecycle transitions
"""

import logging
from typing import Any, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingStatus
from ..models.types import utcnow
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """
    Repository for booking data access.

    Bookings are never deleted here; they only move out of PENDING.
    """

    def __init__(self, db: Session):
        """Initialize with Booking model."""
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def create(self, **kwargs: Any) -> Booking:
        """Create a booking, exposing integrity errors for conflict handling."""
        try:
            return super().create(**kwargs)
        except RepositoryException as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise exc.__cause__
            raise

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            joinedload(Booking.client),
            joinedload(Booking.provider),
        )

    def get_with_participants(self, booking_id: str) -> Optional[Booking]:
        """Fresh read of a booking with client and provider profiles."""
        try:
            return (
                self._apply_eager_loading(self.db.query(Booking))
                .filter(Booking.id == booking_id)
                .populate_existing()
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to get booking: {str(e)}") from e

    def list_for_client(self, client_id: str) -> List[Booking]:
        """Bookings made by a client, newest first."""
        return self._list_for(Booking.client_id == client_id)

    def list_for_provider(self, provider_id: str) -> List[Booking]:
        """Bookings received by a provider, newest first."""
        return self._list_for(Booking.provider_id == provider_id)

    def _list_for(self, criterion: Any) -> List[Booking]:
        try:
            return (
                self._apply_eager_loading(self.db.query(Booking))
                .filter(criterion)
                .order_by(Booking.created_at.desc(), Booking.id.desc())
                .populate_existing()
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}") from e

    def transition_status(
        self,
        booking_id: str,
        to_status: BookingStatus,
        from_status: BookingStatus = BookingStatus.PENDING,
        **fields: Any,
    ) -> bool:
        """
        Move a booking between statuses with a guarded UPDATE.

        Args:
            booking_id: Booking to update
            to_status: Target status
            from_status: Status the row must currently hold
            **fields: Extra columns to set in the same statement

        Returns:
            True if exactly one row moved, False if the booking was not in
            ``from_status`` any more
        """
        values = {getattr(Booking, name): value for name, value in fields.items()}
        values[Booking.status] = to_status.value
        values[Booking.updated_at] = utcnow()
        try:
            updated = (
                self.db.query(Booking)
                .filter(Booking.id == booking_id, Booking.status == from_status.value)
                .update(values, synchronize_session=False)
            )
            return updated == 1
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error moving booking {booking_id} to {to_status.value}: {str(e)}"
            )
            raise RepositoryException(f"Failed to update booking status: {str(e)}") from e

    def set_payment_status(self, booking_id: str, payment_status: str) -> bool:
        """Record the payment outcome on the booking without touching its status."""
        try:
            updated = (
                self.db.query(Booking)
                .filter(Booking.id == booking_id)
                .update(
                    {Booking.payment_status: payment_status, Booking.updated_at: utcnow()},
                    synchronize_session=False,
                )
            )
            return updated == 1
        except SQLAlchemyError as e:
            self.logger.error(f"Error setting payment status on {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to update payment status: {str(e)}") from e
