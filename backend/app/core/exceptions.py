# backend/app/core/exceptions.py
"""
Domain-specific exceptions for the Kalm platform.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.

The ``code`` values double as the typed error names returned to
authenticated callers (``invalid-argument``, ``not-found``, ...).
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    default_code = "internal"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when caller input is malformed or incomplete."""

    default_code = "invalid-argument"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    default_code = "not-found"
    status_code = status.HTTP_404_NOT_FOUND


class UnauthorizedException(DomainException):
    """Raised when the caller is not authenticated."""

    default_code = "unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED


class PreconditionFailure(DomainException):
    """Raised when the system is not in a state that allows the operation."""

    default_code = "failed-precondition"
    status_code = status.HTTP_400_BAD_REQUEST


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    default_code = "internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ProvisioningFailure(ServiceException):
    """Raised when an external resource (video room) could not be provisioned."""


class PersistenceFailure(ServiceException):
    """Raised when the atomic session/payment write fails."""


class DuplicateRecordError(DomainException):
    """Raised when a payment for the same order id has already been recorded."""

    default_code = "already-exists"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, order_id: str, session_id: Optional[str]) -> None:
        super().__init__(
            message=f"Payment for order {order_id} already recorded",
            details={"order_id": order_id, "session_id": session_id},
        )
        self.order_id = order_id
        self.session_id = session_id


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
