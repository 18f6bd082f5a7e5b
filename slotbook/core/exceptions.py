# slotbook/core/exceptions.py
"""
Domain-specific exceptions for the slot-booking core.

Every exception carries a stable machine-checkable ``code`` plus a
human-readable message. The HTTP layer maps them 1:1 onto status codes
through ``to_http_exception``.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException carrying the error kind and message."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when input is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ConflictException(DomainException):
    """Raised when the current state of a resource disallows the request."""

    status_code = status.HTTP_409_CONFLICT


class ServiceException(DomainException):
    """Raised when a service operation fails (store or transaction failure)."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class SlotUnavailableException(ConflictException):
    """Raised when a slot is no longer AVAILABLE for booking."""

    def __init__(self, slot_id: str, message: Optional[str] = None):
        super().__init__(
            message=message or "Slot is not available",
            code="SLOT_NOT_AVAILABLE",
            details={"slot_id": slot_id},
        )


class BookingStateException(ConflictException):
    """Raised when a booking transition is attempted from a terminal state."""

    def __init__(self, booking_id: str, current_status: str, message: str):
        super().__init__(
            message=message,
            code="BOOKING_STATE_CONFLICT",
            details={"booking_id": booking_id, "status": current_status},
        )


class InvalidPaymentSignatureException(ValidationException):
    """Raised when a client-submitted payment signature does not verify."""

    def __init__(self, order_id: str):
        super().__init__(
            message="Invalid signature",
            code="INVALID_PAYMENT_SIGNATURE",
            details={"order_id": order_id},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
