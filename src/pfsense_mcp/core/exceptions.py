"""
pfSense MCP Server - Exception Hierarchy

This module contains all custom exceptions used throughout the pfSense MCP server.
"""

from datetime import datetime
from typing import Any


class PfSenseError(Exception):
    """Base exception for all pfSense-related errors with enhanced context."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }


class ConfigurationError(PfSenseError):
    """Client not configured or invalid configuration."""


class AuthenticationError(PfSenseError):
    """Login failed, session expired or the anti-forgery token was rejected."""


class ClientValidationError(PfSenseError, ValueError):
    """A caller-supplied value cannot be encoded for the web console."""


class ServerValidationError(PfSenseError):
    """The web console rejected the submitted form fields."""

    def __init__(self, message: str, field_errors: list[str] | None = None, context: dict[str, Any] | None = None):
        self.field_errors = list(field_errors or [])
        super().__init__(message, context={"field_errors": self.field_errors, **(context or {})})


class ResourceNotFoundError(PfSenseError):
    """Natural key absent from the current list."""


class ParseError(PfSenseError):
    """HTML or JSON returned by the web console has an unexpected shape."""


class ScriptExecutionError(ParseError):
    """The diagnostic script console reported a server-side error."""


class FailedRequestError(PfSenseError):
    """HTTP request failed after exhausting retries or returned a non-2xx status."""

    def __init__(
        self,
        message: str,
        attempts: int,
        method: str,
        path: str,
        status_code: int | None = None,
    ):
        super().__init__(
            message,
            context={"attempts": attempts, "method": method, "path": path, "status_code": status_code},
        )
        self.attempts = attempts
        self.method = method
        self.path = path
        self.status_code = status_code


class OperationFailedError(PfSenseError):
    """Wraps the cause of a failed resource operation."""

    verb = "operate on"

    def __init__(
        self,
        resource: str,
        cause: Exception | None = None,
        category: str | None = None,
        detail: str | None = None,
    ):
        message = f"failed to {self.verb} {resource}"
        if detail:
            message = f"{message}, {detail}"
        if cause is not None:
            message = f"{message}, {cause}"
        super().__init__(
            message,
            context={
                "operation": self.verb,
                "resource": resource,
                "category": category,
                "cause": type(cause).__name__ if cause is not None else None,
            },
        )
        self.resource = resource
        self.category = category
        self.cause = cause
        self.__cause__ = cause

    @property
    def root_cause(self) -> Exception | None:
        """Innermost non-wrapper cause."""
        cause = self.cause
        while isinstance(cause, OperationFailedError):
            cause = cause.cause
        return cause


class GetOperationFailed(OperationFailedError):
    verb = "get"


class CreateOperationFailed(OperationFailedError):
    verb = "create"


class UpdateOperationFailed(OperationFailedError):
    verb = "update"


class DeleteOperationFailed(OperationFailedError):
    verb = "delete"


class ApplyOperationFailed(OperationFailedError):
    verb = "apply"
