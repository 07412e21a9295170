"""
pfSense MCP Server - Error Message Sanitization

The web console is driven with form posts, so the values most likely to leak
into an error are form fields: ``passwordfld``, the ``__csrf_magic`` token and
the ``PHPSESSID`` cookie. This module keeps them out of user-facing messages
and structured error logs.
"""

import json
import logging
import re
from typing import Any

import httpx

from ..core.exceptions import (
    AuthenticationError,
    ClientValidationError,
    ConfigurationError,
    FailedRequestError,
    OperationFailedError,
    PfSenseError,
    ResourceNotFoundError,
    ServerValidationError,
)

logger = logging.getLogger("pfsense-mcp")

REDACTED = "[REDACTED]"

# Key fragments whose values are never shown
SENSITIVE_KEYS = (
    "password",
    "passwordfld",
    "csrf",
    "token",
    "credential",
    "secret",
    "cookie",
    "phpsessid",
)

# key=value or key: value, where the value ends at whitespace or a form/cookie separator
SENSITIVE_VALUE_PATTERN = re.compile(
    r"(?P<key>[\w-]*(?:" + "|".join(SENSITIVE_KEYS) + r")[\w-]*)\s*[=:]\s*[^\s&;,]+",
    re.IGNORECASE,
)


def is_sensitive_key(key: str) -> bool:
    key = key.lower()
    return any(fragment in key for fragment in SENSITIVE_KEYS)


class ErrorMessageSanitizer:
    """Sanitize error messages for safe user display."""

    @staticmethod
    def sanitize_for_user(error: Exception, operation: str = "operation") -> str:
        """
        Return a user-safe message for ``error``.

        Operation wrappers are unwrapped first so the message describes what
        actually went wrong. Authentication and transport failures get a
        fixed message; the console's own wording is only echoed for input
        problems, where it is what the user needs to see.
        """
        if isinstance(error, OperationFailedError) and error.root_cause is not None:
            error = error.root_cause

        if isinstance(error, AuthenticationError):
            return "Authentication failed. Please check your pfSense credentials."
        if isinstance(error, (ClientValidationError, ServerValidationError)):
            return f"Invalid input: {error.message}"
        if isinstance(error, ResourceNotFoundError):
            return f"Resource not found: {error.message}"
        if isinstance(error, FailedRequestError):
            return "Cannot reach pfSense. Check the URL and network connectivity."
        if isinstance(error, httpx.TimeoutException):
            return "Request timed out. pfSense may be overloaded."

        text = ErrorMessageSanitizer.sanitize_text(error.message) if isinstance(error, PfSenseError) else None
        if isinstance(error, ConfigurationError):
            return f"Configuration error: {text}"
        if text is not None:
            return f"pfSense error: {text}"

        return f"An error occurred during {operation}. Please check the logs for details."

    @staticmethod
    def sanitize_for_logs(error: Exception) -> dict[str, Any]:
        """Detailed, redacted error info for the log (never shown to users)."""
        error_info: dict[str, Any] = {
            "error_type": type(error).__name__,
            "error_module": type(error).__module__,
            "error_message": ErrorMessageSanitizer.sanitize_text(str(error)),
        }

        if isinstance(error, PfSenseError):
            error_info["error_code"] = error.error_code
            error_info["context"] = ErrorMessageSanitizer.sanitize_context(error.context)

        if isinstance(error, OperationFailedError) and error.root_cause is not None:
            error_info["root_cause"] = type(error.root_cause).__name__

        return error_info

    @staticmethod
    def sanitize_text(text: str) -> str:
        """Replace sensitive values, e.g. ``passwordfld=hunter2`` becomes ``passwordfld=[REDACTED]``."""
        return SENSITIVE_VALUE_PATTERN.sub(lambda m: f"{m.group('key')}={REDACTED}", text)

    @staticmethod
    def sanitize_context(context: dict[str, Any] | None) -> dict[str, Any]:
        """Redact sensitive keys and values in a (possibly nested) context dictionary."""
        if not context:
            return {}
        return {key: _sanitize_value(key, value) for key, value in context.items()}


def _sanitize_value(key: str, value: Any) -> Any:
    if is_sensitive_key(key):
        return REDACTED
    if isinstance(value, dict):
        return ErrorMessageSanitizer.sanitize_context(value)
    if isinstance(value, (list, tuple)):
        return [_sanitize_value("", item) for item in value]
    if isinstance(value, str):
        return ErrorMessageSanitizer.sanitize_text(value)
    return value


def log_error_safely(
    logger: logging.Logger,
    error: Exception,
    operation: str = "operation",
    user_message: str | None = None,
) -> str:
    """
    Log error with full details and return sanitized user message.

    Args:
        logger: Logger instance
        error: Exception that occurred
        operation: Description of the operation
        user_message: Optional custom user message

    Returns:
        Sanitized user-facing error message
    """
    error_details = ErrorMessageSanitizer.sanitize_for_logs(error)
    logger.error(f"Error in {operation}: {json.dumps(error_details, default=str)}")

    if user_message:
        return user_message
    return ErrorMessageSanitizer.sanitize_for_user(error, operation)
