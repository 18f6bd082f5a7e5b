# slotbook/services/payment_service.py
"""
Payment Service for the slot-booking platform.

Bridges bookings and the external payment gateway:
- create_order: opens a gateway order for a client's booking and records
  it (one payment record per booking, replaced on retry)
- validate_payment: checks the client-submitted HMAC signature, then marks
  the payment and the booking COMPLETED in one transaction
- mark_payment_failed: records a failed attempt without touching the
  booking's lifecycle status

Validation is idempotent: replaying a verified payment returns success
without writing anything.
"""

from decimal import Decimal, InvalidOperation
import logging
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import (
    BookingStateException,
    ConflictException,
    ForbiddenException,
    InvalidPaymentSignatureException,
    NotFoundException,
    ServiceException,
    ValidationException,
)
from ..integrations.payment_gateway import (
    PaymentGateway,
    PaymentGatewayError,
    build_payment_gateway,
    verify_payment_signature,
)
from ..models.booking import Booking, BookingStatus
from ..models.payment import BookingPayment, PaymentStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import CallerPrincipal
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.payment_repository import PaymentRepository
from ..repositories.slot_repository import SlotRepository
from ..schemas.payment import PaymentOrder, PaymentRead, PaymentVerification
from .base import BaseService
from .booking_service import CENTS, BookingService

logger = logging.getLogger(__name__)

RECEIPT_PREFIX = "booking_rcptid_"


def parse_amount(value: Any) -> Decimal:
    """Positive amount in major currency units."""
    if isinstance(value, bool):
        raise ValidationException("Amount must be a positive number", code="INVALID_AMOUNT")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationException(
            "Amount must be a positive number", code="INVALID_AMOUNT", details={"amount": str(value)}
        ) from exc
    if not amount.is_finite() or amount <= 0:
        raise ValidationException(
            "Amount must be a positive number", code="INVALID_AMOUNT", details={"amount": str(value)}
        )
    return amount.quantize(CENTS)


class PaymentService(BaseService):
    """Service layer for payment orders and verification."""

    def __init__(
        self,
        db: Session,
        gateway: Optional[PaymentGateway] = None,
        repository: Optional[PaymentRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
        slot_repository: Optional[SlotRepository] = None,
    ):
        """
        Initialize payment service.

        Args:
            db: Database session
            gateway: Optional gateway client; built from settings when omitted
            repository: Optional PaymentRepository instance
            booking_repository: Optional BookingRepository instance
            slot_repository: Optional SlotRepository instance
        """
        super().__init__(db)
        self.gateway = gateway or build_payment_gateway()
        self.repository = repository or RepositoryFactory.create_payment_repository(db)
        self.booking_repository = booking_repository or RepositoryFactory.create_booking_repository(db)
        self.booking_service = BookingService(
            db,
            repository=self.booking_repository,
            slot_repository=slot_repository,
        )

    @BaseService.measure_operation("create_order")
    def create_order(self, actor: CallerPrincipal, booking_id: Optional[str], amount: Any) -> PaymentOrder:
        """
        Open a gateway order for the caller's booking.

        Raises:
            ValidationException: Missing booking id or non-positive amount
            NotFoundException: Booking missing
            ForbiddenException: Caller is not the booking's client
            ConflictException: Booking already paid, completed or cancelled
            ServiceException: Gateway rejected the order or was unreachable
        """
        if not booking_id or amount is None or (isinstance(amount, str) and not amount.strip()):
            raise ValidationException("Amount and booking ID are required", code="MISSING_FIELDS")
        value = parse_amount(amount)

        booking = self.booking_repository.get_with_participants(booking_id)
        if booking is None:
            raise NotFoundException(
                "Booking not found", code="BOOKING_NOT_FOUND", details={"booking_id": booking_id}
            )

        if booking.client_id != actor.user_id:
            raise ForbiddenException(
                "You can only pay for your own bookings",
                code="NOT_BOOKING_CLIENT",
                details={"booking_id": booking_id},
            )

        self._ensure_payable(booking)

        receipt = f"{RECEIPT_PREFIX}{uuid4().hex[:7]}"
        notes = {"userId": actor.user_id, "bookingId": booking_id}
        try:
            order = self.gateway.create_order(
                amount=value,
                currency=settings.payment_currency,
                receipt=receipt,
                notes=notes,
            )
        except PaymentGatewayError as exc:
            self.logger.error(f"Gateway order creation failed for booking {booking_id}: {exc}")
            raise ServiceException(
                "Unable to create order",
                code="PAYMENT_GATEWAY_ERROR",
                details={"booking_id": booking_id, "gateway_status": exc.status_code},
            ) from exc

        with self.transaction():
            # Verification may have settled the booking while the gateway call was in flight
            current = self.booking_repository.get_with_participants(booking_id)
            if current is None:
                raise NotFoundException(
                    "Booking not found", code="BOOKING_NOT_FOUND", details={"booking_id": booking_id}
                )
            self._ensure_payable(current)
            payment = self.repository.upsert_for_booking(
                booking_id=booking_id,
                order_id=order.order_id,
                amount=value,
                currency=order.currency,
            )
            if payment is None:
                raise BookingStateException(current.id, current.status, "Booking is already paid")

        self.log_operation(
            "create_order",
            booking_id=booking_id,
            order_id=order.order_id,
            amount=value,
            currency=order.currency,
        )
        return PaymentOrder(
            order_id=payment.order_id,
            booking_id=booking_id,
            amount=value,
            currency=payment.currency,
            receipt=order.receipt,
            status=PaymentStatus(payment.status),
        )

    @BaseService.measure_operation("validate_payment")
    def validate_payment(
        self,
        order_id: Optional[str],
        payment_id: Optional[str],
        signature: Optional[str],
    ) -> PaymentVerification:
        """
        Verify a gateway payment and complete the booking.

        Raises:
            ValidationException: Missing fields or signature mismatch
            NotFoundException: No payment record for the order
            ConflictException: Booking was cancelled, or the order was
                already settled by a different payment
        """
        if not order_id or not payment_id or not signature:
            raise ValidationException("Please provide valid payment data", code="MISSING_PAYMENT_DATA")

        if not verify_payment_signature(order_id, payment_id, signature, settings.payment_key_secret):
            prometheus_metrics.inc_payment_verification("invalid_signature")
            self.logger.warning(f"Payment signature mismatch for order {order_id}")
            raise InvalidPaymentSignatureException(order_id)

        payment = self.repository.get_by_order_id(order_id)
        if payment is None:
            raise NotFoundException(
                "Payment order not found", code="PAYMENT_NOT_FOUND", details={"order_id": order_id}
            )

        if payment.status == PaymentStatus.COMPLETED.value:
            return self._replayed(payment, payment_id)

        booking = payment.booking
        if booking.status == BookingStatus.CANCELLED.value:
            self._reject_cancelled(booking, order_id)

        booking_was_completed = booking.status == BookingStatus.COMPLETED.value
        with self.transaction():
            if not self.repository.mark_completed(order_id, payment_id, signature):
                # Another request settled this order first
                current = self.repository.get_by_order_id(order_id)
                if current is None:
                    raise NotFoundException("Payment order not found", code="PAYMENT_NOT_FOUND")
                return self._replayed(current, payment_id)

            if booking_was_completed:
                self.booking_repository.set_payment_status(booking.id, PaymentStatus.COMPLETED.value)
            elif not self.booking_service.apply_completion(
                booking, payment_status=PaymentStatus.COMPLETED.value
            ):
                current_booking = self.booking_repository.get_with_participants(booking.id)
                if current_booking is None or current_booking.status == BookingStatus.CANCELLED.value:
                    self._reject_cancelled(current_booking or booking, order_id)
                self.booking_repository.set_payment_status(booking.id, PaymentStatus.COMPLETED.value)
                booking_was_completed = True

        prometheus_metrics.inc_payment_verification("verified")
        self.log_operation(
            "validate_payment",
            order_id=order_id,
            payment_id=payment_id,
            booking_id=booking.id,
            booking_previously_completed=booking_was_completed,
        )
        return PaymentVerification(
            order_id=order_id,
            payment_id=payment_id,
            booking_id=booking.id,
            booking_status=BookingStatus.COMPLETED,
            already_completed=booking_was_completed,
        )

    @BaseService.measure_operation("mark_payment_failed")
    def mark_payment_failed(self, order_id: Optional[str], reason: Optional[str] = None) -> PaymentRead:
        """
        Record a failed payment attempt. The booking stays PENDING so the
        client can retry with a new order.

        Raises:
            ValidationException: Missing order id
            NotFoundException: No payment record for the order
            ConflictException: Payment already completed
        """
        if not order_id:
            raise ValidationException("Order ID is required", code="MISSING_ORDER_ID")

        payment = self.repository.get_by_order_id(order_id)
        if payment is None:
            raise NotFoundException(
                "Payment order not found", code="PAYMENT_NOT_FOUND", details={"order_id": order_id}
            )

        with self.transaction():
            if not self.repository.mark_failed(order_id, (reason or "").strip() or None):
                self.logger.warning(f"Refusing to fail completed payment for order {order_id}")
                raise ConflictException(
                    "Payment is already completed",
                    code="PAYMENT_ALREADY_COMPLETED",
                    details={"order_id": order_id},
                )
            self.booking_repository.set_payment_status(payment.booking_id, PaymentStatus.FAILED.value)

        self.log_operation("mark_payment_failed", order_id=order_id, booking_id=payment.booking_id)
        refreshed = self.repository.get_by_order_id(order_id)
        return PaymentRead.model_validate(refreshed)

    # Helpers

    def _ensure_payable(self, booking: Booking) -> None:
        if booking.status == BookingStatus.CANCELLED.value:
            raise BookingStateException(booking.id, booking.status, "Cannot pay for a cancelled booking")
        if (
            booking.status == BookingStatus.COMPLETED.value
            or booking.payment_status == PaymentStatus.COMPLETED.value
        ):
            raise BookingStateException(booking.id, booking.status, "Booking is already paid")

    def _reject_cancelled(self, booking: Booking, order_id: str) -> None:
        self.logger.warning(f"Payment {order_id} arrived for cancelled booking {booking.id}")
        raise BookingStateException(
            booking.id,
            BookingStatus.CANCELLED.value,
            "Cannot complete payment for a cancelled booking",
        )

    def _replayed(self, payment: BookingPayment, payment_id: str) -> PaymentVerification:
        if payment.payment_id != payment_id:
            self.logger.warning(
                f"Order {payment.order_id} already settled by payment {payment.payment_id}"
            )
            raise ConflictException(
                "Order is already paid by a different payment",
                code="PAYMENT_ALREADY_COMPLETED",
                details={"order_id": payment.order_id},
            )

        prometheus_metrics.inc_payment_verification("replayed")
        self.logger.info(f"Payment {payment_id} for order {payment.order_id} already verified")
        booking = self.booking_repository.get_with_participants(payment.booking_id)
        return PaymentVerification(
            order_id=payment.order_id,
            payment_id=payment_id,
            booking_id=payment.booking_id,
            booking_status=BookingStatus(booking.status) if booking else BookingStatus.COMPLETED,
            already_completed=True,
        )
