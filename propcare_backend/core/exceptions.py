"""
Custom exception classes for consistent error handling across all modules.

Every exception carries the HTTP status the API should answer with, so
routers never translate errors themselves.
"""

from typing import Any


class PropCareException(Exception):
    """Base exception for all PropCare related errors."""

    status_code: int = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(PropCareException):
    """Raised when a resource is not found."""

    status_code = 404

    def __init__(
        self, message: str = "Resource not found", details: dict[str, Any] | None = None
    ):
        super().__init__(message, details)


class ResourceNotFoundError(NotFoundError):
    """Raised when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        identifier: Any,
        details: dict[str, Any] | None = None,
    ):
        message = f"{resource_type} with identifier '{identifier}' not found"
        super().__init__(message, details)
        self.resource_type = resource_type
        self.identifier = identifier


class ValidationError(PropCareException):
    """Raised when data validation fails. No mutation is attempted."""

    status_code = 422

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        details: dict[str, Any] | None = None,
    ):
        if field:
            full_message = f"Validation error for field '{field}': {message}"
        else:
            full_message = message
        super().__init__(full_message, details)
        self.field = field
        self.value = value


class AuthenticationError(PropCareException):
    """Raised when authentication fails or no session is present."""

    status_code = 401
    redirect_to = "/login"

    def __init__(
        self,
        message: str = "Authentication failed",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)


class Unauthorized(PropCareException):
    """Raised when an actor's role or identity does not permit an action."""

    status_code = 403
    redirect_to = "/"

    def __init__(
        self,
        action: str,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        message = f"Access denied: cannot {action}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, details)
        self.action = action
        self.reason = reason


class InvalidTransition(PropCareException):
    """Raised when a requested status change violates the state machine.

    The record is left unchanged; the caller may refresh and retry.
    """

    status_code = 409

    def __init__(
        self,
        entity: str,
        current: str | None,
        target: str,
        details: dict[str, Any] | None = None,
    ):
        message = f"Cannot move {entity} from '{current}' to '{target}'"
        super().__init__(message, details)
        self.entity = entity
        self.current = current
        self.target = target


class UpstreamTimeout(PropCareException):
    """Raised when a record store or blob store call exceeds its bound."""

    status_code = 504

    def __init__(
        self,
        operation: str,
        timeout: float,
        details: dict[str, Any] | None = None,
    ):
        message = f"'{operation}' did not complete within {timeout:g}s, please retry"
        super().__init__(message, details)
        self.operation = operation
        self.timeout = timeout


class ExternalServiceError(PropCareException):
    """Raised when external service integration fails."""

    status_code = 502

    def __init__(
        self,
        service_name: str,
        operation: str,
        details: dict[str, Any] | None = None,
    ):
        message = f"External service '{service_name}' failed during '{operation}'"
        super().__init__(message, details)
        self.service_name = service_name
        self.operation = operation
