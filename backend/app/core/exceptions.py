# backend/app/core/exceptions.py
"""
Domain-specific exceptions for the coaching platform.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

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
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class UnauthorizedException(DomainException):
    """Raised when user is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


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


class SessionOverlapException(ConflictException):
    """Raised when a session window overlaps another committed session of the same coach."""

    def __init__(
        self,
        start_time: str,
        end_time: str,
        conflicting_session_id: Optional[str] = None,
    ):
        super().__init__(
            message=f"Session {start_time} - {end_time} overlaps an existing session",
            code="SESSION_OVERLAP",
            details={
                "start_time": start_time,
                "end_time": end_time,
                "conflicting_session_id": conflicting_session_id,
            },
        )


class CapacityException(ConflictException):
    """Raised when a booking request or approval would exceed max_students."""

    def __init__(self, message: Optional[str] = None, *, session_id: str, max_students: int):
        super().__init__(
            message=message or "Session is full",
            code="SESSION_FULL",
            details={"session_id": session_id, "max_students": max_students},
        )


class AlreadyRequestedException(ConflictException):
    """Raised when a student already holds an active booking for a session."""

    def __init__(self, session_id: str):
        super().__init__(
            message="You already have a booking or pending request for this session",
            code="ALREADY_REQUESTED",
            details={"session_id": session_id},
        )


class InvalidBookingStateException(BusinessRuleException):
    """Raised when a booking transition is attempted from the wrong status."""

    def __init__(self, booking_id: str, current_status: str, action: str):
        super().__init__(
            message=f"Only pending bookings can be {action}",
            code="INVALID_BOOKING_STATE",
            details={
                "booking_id": booking_id,
                "current_status": current_status,
                "action": action,
            },
        )


class LockTimeoutException(ConflictException):
    """Raised when a scheduling or capacity lock is not obtained in time."""

    def __init__(self, lock_key: str):
        super().__init__(
            message="Another request is updating this resource, please retry",
            code="RESOURCE_BUSY",
            details={"lock_key": lock_key},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
