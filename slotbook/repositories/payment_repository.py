# slotbook/repositories/payment_repository.py
"""
Payment Repository for gateway order records.

One BookingPayment per booking: order creation upserts by booking id,
verification looks the record up by the gateway's order id.
"""

from decimal import Decimal
import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.payment import BookingPayment, PaymentStatus
from ..models.types import utcnow
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class PaymentRepository(BaseRepository[BookingPayment]):
    """Repository for booking payment records."""

    def __init__(self, db: Session):
        super().__init__(db, BookingPayment)
        self.logger = logging.getLogger(__name__)

    def get_by_order_id(self, order_id: str) -> Optional[BookingPayment]:
        try:
            return (
                self.db.query(BookingPayment)
                .options(joinedload(BookingPayment.booking))
                .filter(BookingPayment.order_id == order_id)
                .populate_existing()
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting payment for order {order_id}: {str(e)}")
            raise RepositoryException(f"Failed to get payment: {str(e)}") from e

    def get_by_booking_id(self, booking_id: str) -> Optional[BookingPayment]:
        try:
            return (
                self.db.query(BookingPayment)
                .filter(BookingPayment.booking_id == booking_id)
                .populate_existing()
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting payment for booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to get payment: {str(e)}") from e

    def upsert_for_booking(
        self,
        booking_id: str,
        order_id: str,
        amount: Decimal,
        currency: str,
    ) -> Optional[BookingPayment]:
        """
        Create or replace the pending order for a booking.

        A retried order overwrites the previous order id and clears any
        earlier verification data. A COMPLETED payment is never replaced:
        returns None when the guarded update finds the row already settled.
        """
        try:
            payment = self.get_by_booking_id(booking_id)
            if payment is None:
                return self.create(
                    booking_id=booking_id,
                    order_id=order_id,
                    amount=amount,
                    currency=currency,
                    status=PaymentStatus.PENDING.value,
                )

            updated = (
                self.db.query(BookingPayment)
                .filter(
                    BookingPayment.booking_id == booking_id,
                    BookingPayment.status != PaymentStatus.COMPLETED.value,
                )
                .update(
                    {
                        BookingPayment.order_id: order_id,
                        BookingPayment.amount: amount,
                        BookingPayment.currency: currency,
                        BookingPayment.status: PaymentStatus.PENDING.value,
                        BookingPayment.payment_id: None,
                        BookingPayment.signature: None,
                        BookingPayment.failure_reason: None,
                        BookingPayment.paid_at: None,
                        BookingPayment.updated_at: utcnow(),
                    },
                    synchronize_session=False,
                )
            )
            if updated != 1:
                self.logger.warning(f"Kept settled payment {payment.order_id} for booking {booking_id}")
                return None
            return self.get_by_booking_id(booking_id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error upserting payment for booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to upsert payment: {str(e)}") from e

    def mark_completed(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Guarded PENDING/FAILED -> COMPLETED on the order's payment row."""
        return self._update_where_not_completed(
            order_id,
            status=PaymentStatus.COMPLETED.value,
            payment_id=payment_id,
            signature=signature,
            failure_reason=None,
            paid_at=utcnow(),
        )

    def mark_failed(self, order_id: str, reason: Optional[str]) -> bool:
        """Guarded PENDING/FAILED -> FAILED on the order's payment row."""
        return self._update_where_not_completed(
            order_id,
            status=PaymentStatus.FAILED.value,
            failure_reason=reason,
        )

    def _update_where_not_completed(self, order_id: str, **fields: Any) -> bool:
        values = {getattr(BookingPayment, name): value for name, value in fields.items()}
        values[BookingPayment.updated_at] = utcnow()
        try:
            updated = (
                self.db.query(BookingPayment)
                .filter(
                    BookingPayment.order_id == order_id,
                    BookingPayment.status != PaymentStatus.COMPLETED.value,
                )
                .update(values, synchronize_session=False)
            )
            return updated == 1
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating payment for order {order_id}: {str(e)}")
            raise RepositoryException(f"Failed to update payment: {str(e)}") from e
