"""
pfSense MCP Server - Retry Mechanism

This module provides the retry policy of the request executor: a retry predicate
over transport errors and server status codes, and linear backoff with jitter.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import httpx

from .exceptions import FailedRequestError
from .models import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_MAX_WAIT, DEFAULT_RETRY_MIN_WAIT

logger = logging.getLogger("pfsense-mcp")

HTTP_NOT_IMPLEMENTED = 501


class RetryConfig:
    """Configuration for retry mechanism with linear jittered backoff."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        min_wait: float = DEFAULT_RETRY_MIN_WAIT,
        max_wait: float = DEFAULT_RETRY_MAX_WAIT,
    ):
        """Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts, including the first one
            min_wait: Lower bound of the jittered per-attempt delay in seconds
            max_wait: Upper bound of the jittered per-attempt delay in seconds
        """
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait


@dataclass
class RetryState:
    """State of one logical request across its attempts."""

    attempt: int = 0
    last_error: Optional[Exception] = None
    delay: float = 0.0


def should_retry(response: Optional[httpx.Response], error: Optional[Exception]) -> bool:
    """Decide whether an attempt is worth repeating.

    Transport errors always are. Server errors are too, except 501 which the
    remote system uses for features it will never implement.
    """
    if error is not None:
        return True
    if response is None:
        return False
    status = response.status_code
    return status == 0 or (status >= 500 and status != HTTP_NOT_IMPLEMENTED)


def linear_jitter(min_wait: float, max_wait: float, attempt: int) -> float:
    """Delay before the next attempt: ``attempt * uniform(min_wait, max_wait)``."""
    jitter = min_wait + random.random() * (max_wait - min_wait)
    return attempt * jitter


async def retry_with_backoff(
    send: Callable[[], Awaitable[httpx.Response]],
    retry_config: Optional[RetryConfig] = None,
    method: str = "GET",
    path: str = "/",
    state: Optional[RetryState] = None,
) -> httpx.Response:
    """Run ``send`` until it succeeds, fails permanently or runs out of attempts.

    ``send`` must build a fresh request on every call since request bodies
    cannot be replayed.

    Args:
        send: Coroutine factory performing one attempt
        retry_config: Configuration for retry mechanism
        method: HTTP method, for diagnostics
        path: Request path, for diagnostics
        state: Optional state object, filled in for the caller

    Returns:
        The successful (2xx) response

    Raises:
        FailedRequestError: Non-2xx status or exhausted retries
        asyncio.CancelledError: The caller was cancelled, in flight or waiting
    """
    if retry_config is None:
        retry_config = RetryConfig()
    if state is None:
        state = RetryState()

    response: Optional[httpx.Response] = None
    retry = False

    while True:
        state.attempt += 1
        response = None
        try:
            response = await send()
            state.last_error = None
        except httpx.TransportError as e:
            state.last_error = e

        retry = should_retry(response, state.last_error)
        if not retry or state.attempt >= retry_config.max_attempts:
            break

        if response is not None:
            await response.aclose()

        state.delay = linear_jitter(retry_config.min_wait, retry_config.max_wait, state.attempt)
        reason = state.last_error if state.last_error is not None else f"HTTP {response.status_code}"
        logger.info(
            f"Attempt {state.attempt} of {method} {path} failed, retrying in {state.delay:.2f}s: {reason}"
        )
        await asyncio.sleep(state.delay)

    if state.last_error is not None:
        raise FailedRequestError(
            f"failed request after {state.attempt} attempt(s), {method} {path}, {state.last_error}",
            attempts=state.attempt,
            method=method,
            path=path,
        ) from state.last_error

    if retry or not (200 <= response.status_code < 300):
        status_code = response.status_code
        await response.aclose()
        raise FailedRequestError(
            f"failed request after {state.attempt} attempt(s), {method} {path}, HTTP {status_code}",
            attempts=state.attempt,
            method=method,
            path=path,
            status_code=status_code,
        )

    return response
