"""
pfSense MCP Server

A Model Context Protocol (MCP) server that manages pfSense firewalls by
automating their web administration console: firewall aliases, DNS resolver
overrides and configuration files, DHCPv4 static mappings and the apply steps
that make them live.
"""

__version__ = "1.0.0"

from .core.client import PfSenseClient, connect
from .core.exceptions import (
    ApplyOperationFailed,
    AuthenticationError,
    ClientValidationError,
    ConfigurationError,
    CreateOperationFailed,
    DeleteOperationFailed,
    FailedRequestError,
    GetOperationFailed,
    ParseError,
    PfSenseError,
    ResourceNotFoundError,
    ScriptExecutionError,
    ServerValidationError,
    UpdateOperationFailed,
)
from .core.models import PfSenseConfig
from .core.state import ServerState

__all__ = [
    # Exceptions
    "PfSenseError",
    "ConfigurationError",
    "AuthenticationError",
    "ClientValidationError",
    "ServerValidationError",
    "ResourceNotFoundError",
    "ParseError",
    "ScriptExecutionError",
    "FailedRequestError",
    "GetOperationFailed",
    "CreateOperationFailed",
    "UpdateOperationFailed",
    "DeleteOperationFailed",
    "ApplyOperationFailed",
    # Core classes
    "PfSenseConfig",
    "PfSenseClient",
    "ServerState",
    "connect",
]
