# backend/wakepark/core/exceptions.py
"""
Domain-specific exceptions for the wakepark scheduling engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


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
        """Convert to an HTTPException using the class status code."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised for malformed ranges, empty batches and misaligned requests."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a target slot or booking does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class SlotStateException(BusinessRuleException):
    """Raised when a slot transition violates the lifecycle preconditions."""

    def __init__(
        self,
        message: str,
        *,
        slot_id: Optional[int] = None,
        current_status: Optional[str] = None,
        action: Optional[str] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if slot_id is not None:
            details["slot_id"] = slot_id
        if current_status is not None:
            details["current_status"] = current_status
        if action is not None:
            details["action"] = action
        super().__init__(message=message, code="SLOT_STATE", details=details)
        self.slot_id = slot_id


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class BookingConflictException(ConflictException):
    """
    Raised by the commit-time conflict check.

    ``details["conflicts"]`` lists every overlapping booked range so the caller
    can show them next to the rejected request.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        conflicts: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(
            message=message
            or "The selected time overlaps an existing booking. Please pick different times.",
            code="BOOKING_CONFLICT",
            details={"conflicts": conflicts or []},
        )
        self.conflicts = conflicts or []


class LeadTimeException(BusinessRuleException):
    """Raised when online booking is requested inside the lead-time window."""

    def __init__(self, lead_time_days: int, mode: str):
        super().__init__(
            message=f"Online booking requires {lead_time_days} days lead time",
            code="LEAD_TIME_REQUIRED",
            details={"lead_time_days": lead_time_days, "mode": mode},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
