"""
pfSense MCP Server - Core Infrastructure

This package contains the web console client and the infrastructure it is
built from: session and token handling, retries, lock coordination and HTML
scraping.
"""

from .client import PfSenseClient, RequestResponseLogger, connect
from .exceptions import (
    ApplyOperationFailed,
    AuthenticationError,
    ClientValidationError,
    ConfigurationError,
    CreateOperationFailed,
    DeleteOperationFailed,
    FailedRequestError,
    GetOperationFailed,
    OperationFailedError,
    ParseError,
    PfSenseError,
    ResourceNotFoundError,
    ScriptExecutionError,
    ServerValidationError,
    UpdateOperationFailed,
)
from .locks import Coordinator, LockCategory, ReadWriteLock
from .models import PfSenseConfig
from .retry import RetryConfig, RetryState, retry_with_backoff
from .session import Session
from .state import ServerState

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
    "OperationFailedError",
    "GetOperationFailed",
    "CreateOperationFailed",
    "UpdateOperationFailed",
    "DeleteOperationFailed",
    "ApplyOperationFailed",
    # Models
    "PfSenseConfig",
    # Client
    "PfSenseClient",
    "RequestResponseLogger",
    "connect",
    "Session",
    # Concurrency
    "Coordinator",
    "LockCategory",
    "ReadWriteLock",
    # State
    "ServerState",
    # Retry
    "RetryConfig",
    "RetryState",
    "retry_with_backoff",
]
