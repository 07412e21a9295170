"""
pfSense MCP Server - Web Console Client

This module provides the main client class for automating the pfSense web
console. The console has no stable API, so the client impersonates a browser:
it logs in through the login form, keeps the rotating anti-forgery token,
submits URL-encoded forms and reads configuration through the diagnostic
script console.
"""

import json
import logging
import ssl
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

import certifi
import httpx
from bs4 import BeautifulSoup

from ..shared.constants import (
    LOGIN_FAILURE_PHRASE,
    LOGIN_FORM_FIELD,
    LOGIN_PASSWORD_FIELD,
    LOGIN_SUBMIT_VALUE,
    PAGE_DIAG_COMMAND,
    PAGE_INDEX,
    SCRIPT_SUBMIT_PHP,
    SCRIPT_SUBMIT_SHELL,
)
from .exceptions import (
    AuthenticationError,
    ClientValidationError,
    FailedRequestError,
    ParseError,
    PfSenseError,
    ServerValidationError,
)
from .html import (
    is_csrf_rejection,
    is_login_page,
    parse_html,
    scrape_script_output,
    scrape_validation_errors,
)
from .locks import Coordinator
from .models import PfSenseConfig
from .retry import RetryConfig, RetryState, retry_with_backoff
from .session import Session

logger = logging.getLogger("pfsense-mcp")

USER_AGENT = "pfSense-MCP-Server/1.0"
SENSITIVE_FORM_FIELDS = {LOGIN_PASSWORD_FIELD}


class RequestResponseLogger:
    """Framework for logging console requests and responses with sensitive data protection."""

    def __init__(self, logger: logging.Logger):
        """Initialize request/response logger.

        Args:
            logger: Logger instance to use for logging
        """
        self.logger = logger

    def log_request(
        self,
        method: str,
        url: str,
        data: Optional[Mapping[str, Any]] = None,
        operation: str = "unknown",
        redact: Optional[set] = None,
    ):
        """Log request details with form secrets redacted.

        Args:
            method: HTTP method
            url: Request URL
            data: Form fields
            operation: Operation name for context
            redact: Additional field names to redact (e.g. the token field)
        """
        hidden = SENSITIVE_FORM_FIELDS | (redact or set())
        fields = {}
        if data:
            for key, value in data.items():
                fields[key] = "[REDACTED]" if key in hidden else value

        log_data = {
            "operation": operation,
            "request": {
                "method": method,
                "url": url,
                "fields": sorted(fields),
                "has_data": bool(data),
            },
        }

        self.logger.info(f"Console Request: {json.dumps(log_data)}")
        if fields:
            self.logger.debug(f"Console Request fields: {json.dumps(fields, default=str)}")

    def log_response(
        self,
        status_code: int,
        response_size: Optional[int] = None,
        duration_ms: Optional[float] = None,
        operation: str = "unknown",
        attempts: int = 1,
        error: Optional[Exception] = None,
    ):
        """Log response details with performance metrics.

        Args:
            status_code: HTTP status code
            response_size: Size of response in bytes
            duration_ms: Request duration in milliseconds, all attempts included
            operation: Operation name for context
            attempts: Number of attempts the request took
            error: Exception if request failed
        """
        log_data = {
            "operation": operation,
            "response": {
                "status_code": status_code,
                "response_size": response_size,
                "duration_ms": duration_ms,
                "attempts": attempts,
                "success": 200 <= status_code < 300,
                "has_error": bool(error),
            },
        }

        if error:
            log_data["error"] = str(error)

        level = logging.INFO if log_data["response"]["success"] else logging.WARNING
        self.logger.log(level, f"Console Response: {json.dumps(log_data)}")


# Initialize request/response logger
request_logger = RequestResponseLogger(logger)


class PfSenseClient:
    """Client for automating the pfSense web console.

    One instance owns one authenticated session, one anti-forgery token and one
    lock coordinator, so independent instances never interfere.
    """

    def _create_ssl_context(self, verify_ssl: bool) -> ssl.SSLContext:
        """
        Create SSL context with security hardening.

        Args:
            verify_ssl: Whether to verify SSL certificates

        Returns:
            Configured SSL context
        """
        if not verify_ssl:
            logger.warning(
                "SSL CERTIFICATE VERIFICATION IS DISABLED!\n"
                "Connection is vulnerable to Man-in-the-Middle (MITM) attacks.\n"
                "This should ONLY be used with self-signed appliances on isolated networks."
            )
            context = ssl.create_default_context()
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
            return context

        context = ssl.create_default_context(cafile=certifi.where())
        context.check_hostname = True
        context.verify_mode = ssl.CERT_REQUIRED
        context.minimum_version = ssl.TLSVersion.TLSv1_2

        logger.debug("SSL verification enabled with TLS 1.2+ enforcement")
        return context

    def __init__(self, config: PfSenseConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize pfSense web console client.

        Args:
            config: Configuration for pfSense connection
            transport: Alternative HTTP transport (used by tests)
        """
        # Import here to avoid circular dependency
        from ..resources import (
            ChangeApplier,
            ConfigFileAccessor,
            DHCPv4StaticMappingAccessor,
            DomainOverrideAccessor,
            FirewallIPAliasAccessor,
            FirewallPortAliasAccessor,
            HostOverrideAccessor,
            SystemAccessor,
        )

        self.config = config
        self.base_url = config.url.rstrip("/")
        self.retry_config = RetryConfig(
            max_attempts=config.max_attempts,
            min_wait=config.retry_min_wait,
            max_wait=config.retry_max_wait,
        )
        self.session = Session()
        self.coordinator = Coordinator(serialize_all_writes=config.serialize_all_writes)

        client_kwargs: Dict[str, Any] = {
            "base_url": self.base_url,
            "timeout": httpx.Timeout(config.timeout, connect=5.0),
            "follow_redirects": True,
            "headers": {"User-Agent": USER_AGENT},
            "limits": httpx.Limits(max_keepalive_connections=5, max_connections=10, keepalive_expiry=30.0),
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        else:
            client_kwargs["verify"] = self._create_ssl_context(config.verify_ssl)
        self.client = httpx.AsyncClient(**client_kwargs)

        # Resource accessors share this client's session and coordinator
        self.firewall_ip_aliases = FirewallIPAliasAccessor(self)
        self.firewall_port_aliases = FirewallPortAliasAccessor(self)
        self.domain_overrides = DomainOverrideAccessor(self)
        self.host_overrides = HostOverrideAccessor(self)
        self.config_files = ConfigFileAccessor(self)
        self.dhcpv4_static_mappings = DHCPv4StaticMappingAccessor(self)
        self.apply = ChangeApplier(self)
        self.system = SystemAccessor(self)

        logger.info(
            f"Initialized pfSense client for {self.base_url} "
            f"(SSL verification: {'enabled' if config.verify_ssl else 'DISABLED'}, "
            f"serialize all writes: {config.serialize_all_writes})"
        )

    async def close(self):
        """Close the httpx client and forget the session."""
        await self.session.clear()
        await self.client.aclose()

    async def __aenter__(self) -> "PfSenseClient":
        await self.login()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ========== REQUEST EXECUTOR ==========

    async def execute(
        self,
        method: str,
        path: str,
        data: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
        operation: str = "console_request",
        state: Optional[RetryState] = None,
        redact: Optional[set] = None,
    ) -> httpx.Response:
        """Issue one logical request with the bounded, jittered retry policy.

        Args:
            method: HTTP method (GET or POST)
            path: Page path relative to the base URL
            data: Form fields, URL-encoded into the body
            params: Query parameters
            operation: Name of operation for logging/error context
            state: Optional retry state, filled in for the caller
            redact: Field names to hide from the request log

        Returns:
            The 2xx response, body already read

        Raises:
            ClientValidationError: Unsupported method or empty path
            FailedRequestError: Non-2xx status or exhausted retries
        """
        method = (method or "").upper()
        if method not in ("GET", "POST"):
            raise ClientValidationError(f"Unsupported HTTP method: {method}", context={"method": method})
        if not path:
            raise ClientValidationError("Request path is required", context={"method": method})

        form = dict(data) if data is not None else None
        query = dict(params) if params else None
        if state is None:
            state = RetryState()

        request_logger.log_request(method, f"{self.base_url}{path}", form, operation, redact)
        start_time = datetime.utcnow()

        async def _send() -> httpx.Response:
            # A fresh request per attempt, request bodies are not replayable
            request = self.client.build_request(method, path, data=form, params=query)
            response = await self.client.send(request)
            await response.aread()
            return response

        try:
            response = await retry_with_backoff(
                _send, retry_config=self.retry_config, method=method, path=path, state=state
            )
        except FailedRequestError as e:
            duration_ms = (datetime.utcnow() - start_time).total_seconds() * 1000
            request_logger.log_response(e.status_code or 0, 0, duration_ms, operation, state.attempt, e)
            raise

        duration_ms = (datetime.utcnow() - start_time).total_seconds() * 1000
        request_logger.log_response(
            response.status_code, len(response.content), duration_ms, operation, state.attempt
        )
        return response

    async def request_page(
        self,
        method: str,
        path: str,
        data: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
        mutating: bool = False,
        operation: str = "console_page",
    ) -> BeautifulSoup:
        """Fetch or post to an HTML page and refresh the token from the result.

        Mutating requests must carry the token obtained from the most recent
        response; a request the console rejects for its token is an
        authentication failure, not a transient one.

        Raises:
            AuthenticationError: Missing or rejected token, or session expired
            ParseError: The page carries no token
            FailedRequestError: See ``execute``
        """
        form = dict(data) if data is not None else None
        redact = None
        if form is not None:
            if mutating or self.session.has_token:
                token_name, token_value = await self.session.current_token()
                form[token_name] = token_value
                redact = {token_name}

        response = await self.execute(method, path, form, params, operation=operation, redact=redact)
        soup = parse_html(response.text)

        if is_csrf_rejection(soup):
            raise AuthenticationError(
                "anti-forgery token rejected, session token is stale",
                context={"method": method, "path": path},
            )

        if self.session.authenticated and path != PAGE_INDEX and is_login_page(soup):
            await self.session.clear()
            raise AuthenticationError(
                "session expired, console returned the login form",
                context={"method": method, "path": path},
            )

        await self.session.refresh(soup)
        return soup

    # ========== SESSION MANAGER ==========

    async def login(self) -> "PfSenseClient":
        """Authenticate against the console's login form.

        Raises:
            AuthenticationError: Credentials rejected or the console unreachable
            ParseError: Login page carries no token
        """
        await self.session.clear()
        try:
            # Initial token
            await self.request_page("GET", PAGE_INDEX, operation="login")

            soup = await self.request_page(
                "POST",
                PAGE_INDEX,
                data={
                    LOGIN_FORM_FIELD: self.config.username,
                    LOGIN_PASSWORD_FIELD: self.config.password,
                    "login": LOGIN_SUBMIT_VALUE,
                },
                mutating=True,
                operation="login",
            )
        except (FailedRequestError, httpx.HTTPError) as e:
            raise AuthenticationError(
                f"login failed, {e}", context={"url": self.base_url, "username": self.config.username}
            ) from e

        if soup.find("body") is None:
            raise AuthenticationError("login failed, unable to scrape HTML body")

        if LOGIN_FAILURE_PHRASE in soup.get_text():
            raise AuthenticationError(
                "login failed, username or password incorrect",
                context={"url": self.base_url, "username": self.config.username},
            )

        await self.session.mark_authenticated()
        logger.info(f"Logged in to {self.base_url} as {self.config.username}")
        return self

    # ========== CONFIG READER ==========

    async def run_php_command(self, command: str) -> Any:
        """Run a PHP snippet in the script console and decode its JSON output.

        Raises:
            ScriptExecutionError: The console reported a PHP error
            ParseError: No output element, or the output is not JSON
        """
        soup = await self.request_page(
            "POST",
            PAGE_DIAG_COMMAND,
            data={"txtPHPCommand": command, "submit": SCRIPT_SUBMIT_PHP},
            mutating=True,
            operation="run_php_command",
        )
        output = scrape_script_output(soup)

        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise ParseError(
                f"unable to parse script console output as JSON, {e}",
                context={"output": output[:200]},
            ) from e

    async def read_config(self, path_expression: str) -> Any:
        """Read a JSON snapshot of a subtree of the live configuration.

        Args:
            path_expression: PHP array path below ``$config``, e.g. ``['unbound']['hosts']``
        """
        return await self.run_php_command(f"print_r(json_encode($config{path_expression}));")

    async def run_shell_command(self, command: str) -> str:
        """Run a shell command in the script console and return its output."""
        soup = await self.request_page(
            "POST",
            PAGE_DIAG_COMMAND,
            data={"txtCommand": command, "submit": SCRIPT_SUBMIT_SHELL},
            mutating=True,
            operation="run_shell_command",
        )
        output = soup.find("pre")
        return output.get_text() if output is not None else ""

    # ========== FORM WRITER ==========

    async def submit_form(
        self,
        path: str,
        fields: Mapping[str, Any],
        control_id: Optional[int] = None,
        params: Optional[Mapping[str, Any]] = None,
        operation: str = "submit_form",
    ) -> BeautifulSoup:
        """Submit an edit form, appending the position index when editing.

        Raises:
            ServerValidationError: The console rendered input errors
        """
        query: Dict[str, Any] = dict(params or {})
        if control_id is not None:
            query["id"] = str(control_id)

        soup = await self.request_page("POST", path, data=fields, params=query, mutating=True, operation=operation)

        errors = scrape_validation_errors(soup)
        if errors:
            raise ServerValidationError(
                f"server validation, '{', '.join(errors)}'",
                field_errors=errors,
                context={"path": path},
            )
        return soup

    async def submit_delete(
        self,
        path: str,
        control_id: int,
        fields: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
        operation: str = "submit_delete",
    ) -> BeautifulSoup:
        """Post a delete action for the record at ``control_id``."""
        form: Dict[str, Any] = {"act": "del", "id": str(control_id)}
        form.update(fields or {})
        return await self.request_page("POST", path, data=form, params=params, mutating=True, operation=operation)

    async def submit_raw(
        self,
        path: str,
        fields: Mapping[str, Any],
        params: Optional[Mapping[str, Any]] = None,
        operation: str = "submit_raw",
    ) -> httpx.Response:
        """Post a form to an endpoint that answers with a fragment rather than a page."""
        form = dict(fields)
        token_name, token_value = await self.session.current_token()
        form[token_name] = token_value
        return await self.execute("POST", path, form, params, operation=operation, redact={token_name})


async def connect(config: PfSenseConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> PfSenseClient:
    """Create a client and log in, closing it again if login fails."""
    client = PfSenseClient(config, transport=transport)
    try:
        await client.login()
    except PfSenseError:
        await client.close()
        raise
    return client
