"""
pfSense MCP Server - Shared Utilities

This package contains shared utilities and constants used across the MCP server.
"""

from . import constants
from .error_handlers import (
    ErrorResponse,
    ErrorSeverity,
    handle_apply_warning,
    handle_tool_error,
)

__all__ = [
    "ErrorResponse",
    "ErrorSeverity",
    "constants",
    "handle_apply_warning",
    "handle_tool_error",
]
