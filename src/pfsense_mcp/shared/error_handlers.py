"""
pfSense MCP Server - Error Handling Helpers

This module provides error handling utilities, user-friendly error response
generation and the client-side validators that reject values the web console
could not accept, before any request is sent.
"""

import ipaddress
import json
import logging
import re
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

from ..core.exceptions import (
    AuthenticationError,
    ClientValidationError,
    ConfigurationError,
    FailedRequestError,
    OperationFailedError,
    ParseError,
    PfSenseError,
    ResourceNotFoundError,
    ScriptExecutionError,
    ServerValidationError,
)
from .error_sanitizer import ErrorMessageSanitizer

if TYPE_CHECKING:
    from mcp.server.fastmcp import Context

logger = logging.getLogger("pfsense-mcp")

DNS_LABEL_PATTERN = re.compile(r"^[a-zA-Z0-9]([-a-zA-Z0-9]{0,61}[a-zA-Z0-9])?$")
CONFIG_FILE_NAME_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
MAC_ADDRESS_PATTERN = re.compile(r"^[0-9a-fA-F]{2}(:[0-9a-fA-F]{2}){5}$")


class ErrorSeverity(str, Enum):
    """Enumeration for error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorResponse:
    """Structured error response that tells apart bad input, an unreachable
    appliance and a concurrent change."""

    def __init__(self, error: Exception, operation: str, severity: ErrorSeverity = ErrorSeverity.MEDIUM):
        """Initialize error response.

        Args:
            error: The exception that occurred
            operation: Name of the operation that failed
            severity: Severity level of the error
        """
        self.error = error
        self.operation = operation
        self.severity = severity
        self.timestamp = datetime.utcnow()
        self.error_id = f"{operation}_{int(self.timestamp.timestamp())}"

    @property
    def cause(self) -> Exception:
        """The innermost error behind any operation wrappers."""
        if isinstance(self.error, OperationFailedError) and self.error.root_cause is not None:
            return self.error.root_cause
        return self.error

    def get_user_message(self) -> str:
        """Get user-friendly error message.

        Returns:
            Human-readable error message
        """
        cause = self.cause
        prefix = ""
        if isinstance(self.error, OperationFailedError):
            prefix = f"Failed to {self.error.verb} {self.error.resource}. "

        if isinstance(cause, ClientValidationError):
            return f"{prefix}Invalid input: {cause.message}"
        elif isinstance(cause, ServerValidationError):
            return f"{prefix}pfSense rejected the input: {'; '.join(cause.field_errors) or cause.message}"
        elif isinstance(cause, ConfigurationError):
            return "pfSense connection not configured. Please configure the connection first."
        elif isinstance(cause, AuthenticationError):
            return f"{prefix}Authentication failed. Please check the pfSense credentials."
        elif isinstance(cause, FailedRequestError):
            return (
                f"{prefix}Cannot reach pfSense after {cause.attempts} attempt(s). "
                "Please check the URL and network connectivity."
            )
        elif isinstance(cause, ResourceNotFoundError):
            return (
                f"{prefix}Resource not found: {cause.message}. "
                "It may have been changed or removed concurrently."
            )
        elif isinstance(cause, ScriptExecutionError):
            return f"{prefix}Server-side script failed: {cause.message}"
        elif isinstance(cause, ParseError):
            return f"{prefix}Unexpected response from pfSense: {cause.message}"
        elif isinstance(self.error, OperationFailedError):
            return f"{prefix}{self.error.message}"
        else:
            return f"An unexpected error occurred during {self.operation}."

    def get_technical_details(self) -> Dict[str, Any]:
        """Get technical error details for logging.

        Returns:
            Dictionary containing technical error information
        """
        details = {
            "error_id": self.error_id,
            "operation": self.operation,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat(),
            "error_type": type(self.error).__name__,
            "message": str(self.error),
        }

        if isinstance(self.error, PfSenseError):
            details.update(self.error.to_dict())
            details["context"] = ErrorMessageSanitizer.sanitize_context(self.error.context)

        if self.cause is not self.error:
            details["root_cause"] = type(self.cause).__name__

        return details


async def handle_tool_error(
    ctx: 'Context',
    operation: str,
    error: Exception,
    severity: ErrorSeverity = ErrorSeverity.MEDIUM
) -> str:
    """Centralized error handling for MCP tools.

    Args:
        ctx: MCP context for error reporting
        operation: Name of the operation that failed
        error: The exception that occurred
        severity: Severity level of the error

    Returns:
        User-friendly error message
    """
    error_response = ErrorResponse(error, operation, severity)

    technical_details = error_response.get_technical_details()
    logger.error(f"Tool error in {operation}: {json.dumps(technical_details, indent=2, default=str)}")

    user_message = error_response.get_user_message()
    await ctx.error(user_message)

    return f"Error: {user_message}"


async def handle_apply_warning(ctx: 'Context', operation: str, error: Exception) -> str:
    """Report a failed apply step as a warning.

    The preceding writes may already be stored even though activation failed,
    so this is not reported as a failed write.
    """
    error_response = ErrorResponse(error, operation, ErrorSeverity.LOW)
    logger.warning(
        f"Apply step {operation} failed: {json.dumps(error_response.get_technical_details(), default=str)}"
    )
    message = (
        f"Changes may be saved but were not applied: {error_response.get_user_message()}"
    )
    await ctx.info(message)
    return f"Warning: {message}"


# ========== CLIENT-SIDE VALIDATORS ==========

def validate_dns_label(label: str) -> str:
    """Validate an RFC 1123 DNS label.

    Raises:
        ClientValidationError: If the label is invalid
    """
    if not DNS_LABEL_PATTERN.match(label or ""):
        raise ClientValidationError("not a valid rfc 1123 dns label", context={"value": label})
    return label


def validate_domain(domain: str) -> str:
    """Validate a domain name. Used for FQDNs, search lists and overrides.

    Deliberately loose to match what pfSense itself accepts.
    """
    if not domain:
        raise ClientValidationError("domain cannot be empty")
    if domain.startswith("."):
        raise ClientValidationError("domain cannot start with a dot", context={"value": domain})
    if ".." in domain:
        raise ClientValidationError("domain cannot contain consecutive dots", context={"value": domain})

    for label in (part for part in domain.split(".") if part):
        if not DNS_LABEL_PATTERN.match(label):
            raise ClientValidationError(
                "domain must contain valid rfc 1123 dns label(s)", context={"value": domain}
            )
    return domain


def validate_alias_name(alias: str) -> str:
    if not alias:
        raise ClientValidationError("alias cannot be empty")
    if not all(character.isalnum() or character == "_" for character in alias):
        raise ClientValidationError(
            "alias can only contain letters (A-Z, a-z), numbers (0-9), and underscores (_)",
            context={"value": alias},
        )
    return alias


def validate_config_file_name(name: str) -> str:
    if not name:
        raise ClientValidationError("config file name cannot be empty")
    if not CONFIG_FILE_NAME_PATTERN.match(name):
        raise ClientValidationError(
            "config file name must only consist of lowercase alphanumeric characters (with dashes)",
            context={"value": name},
        )
    return name


def validate_interface(interface: str) -> str:
    if not interface:
        raise ClientValidationError("interface cannot be empty")
    if not interface[0].isalpha():
        raise ClientValidationError("interface must start with a letter (A-Z, a-z)", context={"value": interface})
    if not interface.isalnum():
        raise ClientValidationError(
            "interface can only contain letters and numbers (A-Z, a-z, 0-9)", context={"value": interface}
        )
    return interface


def validate_mac_address(mac_address: str) -> str:
    """Validate an IEEE 802 MAC-48 address with colon separated octets.

    Returns:
        The address in lowercase
    """
    if not mac_address:
        raise ClientValidationError("mac address cannot be empty")
    if not MAC_ADDRESS_PATTERN.match(mac_address):
        if ":" not in mac_address:
            raise ClientValidationError("hex octets must be separated by colons", context={"value": mac_address})
        raise ClientValidationError(
            "not an ieee 802 mac-48 address (6 bytes)", context={"value": mac_address}
        )
    return mac_address.lower()


def validate_port(port: str) -> str:
    port = str(port)
    if not port:
        raise ClientValidationError("port cannot be empty")
    if not port.isdigit():
        raise ClientValidationError("port must be a numeric string", context={"value": port})
    if not 1 <= int(port) <= 65535:
        raise ClientValidationError("port must be in the range 1-65535", context={"value": port})
    return port


def validate_port_range(port_range: str) -> str:
    """Validate a ``start:end`` port range. pfSense does not require start <= end."""
    if not port_range:
        raise ClientValidationError("port range cannot be empty")
    ports = port_range.split(":")
    if len(ports) != 2:
        raise ClientValidationError(
            "port range must be in the format 'startPort:endPort'", context={"value": port_range}
        )
    if not all(port.isdigit() for port in ports):
        raise ClientValidationError("both ports must be a numeric string", context={"value": port_range})
    if not all(1 <= int(port) <= 65535 for port in ports):
        raise ClientValidationError("both ports must be in the range 1-65535", context={"value": port_range})
    return port_range


def validate_ip_address(address: str, family: Optional[str] = None) -> str:
    """Validate an IP address, optionally restricted to ``IPv4`` or ``IPv6``."""
    if not address:
        raise ClientValidationError("ip address cannot be empty")
    try:
        parsed = ipaddress.ip_address(address)
    except ValueError:
        raise ClientValidationError("not a valid ip address", context={"value": address})

    if family == "IPv4" and parsed.version != 4:
        raise ClientValidationError("not a valid ipv4 address", context={"value": address})
    if family == "IPv6" and parsed.version != 6:
        raise ClientValidationError("not a valid ipv6 address", context={"value": address})
    return str(parsed)
