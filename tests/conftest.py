"""
Shared pytest configuration and fixtures for pfSense MCP Server tests.

This module provides common fixtures used across all test modules including:
- A fake pfSense web console served through an httpx mock transport
- Configurations and logged-in clients bound to that console
- MCP context mocks
"""

import base64
import html
import json
import re
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, Mock
from urllib.parse import parse_qsl

import httpx
import pytest
import pytest_asyncio

from src.pfsense_mcp.core import PfSenseClient, PfSenseConfig, connect

TOKEN_NAME = "__csrf_magic"
SESSION_COOKIE = "PHPSESSID"
BASE_URL = "https://pfsense.test"


class FakeConsole:
    """In-memory stand-in for the pfSense web console.

    Renders pages carrying a fresh anti-forgery token, requires the session
    cookie and a previously issued token on every POST, interprets the PHP
    snippets the client sends to the script console by the configuration path
    they reference, and mutates its configuration when edit and delete forms
    are posted.
    """

    def __init__(self, username: str = "admin", password: str = "pfsense"):
        self.username = username
        self.password = password
        self.config: Dict[str, Any] = {
            "aliases": {"alias": []},
            "unbound": {"domainoverrides": [], "hosts": []},
            "dhcpd": {"lan": {"staticmap": []}},
        }
        self.files: Dict[str, str] = {}
        self.version = {"installed_version": "2.7.2-RELEASE", "version": "2.7.2-RELEASE"}

        self.requests: List[Dict[str, Any]] = []
        self.applied: List[str] = []
        self.script_outputs: Dict[str, str] = {}
        self.reject_next_submit: List[str] = []
        self.failures: Dict[str, List[Any]] = {}

        self._token_counter = 0
        self._issued_tokens = set()
        self._sessions = set()

    # ========== Test controls ==========

    def fail_next(self, path: str, *outcomes: Any) -> None:
        """Queue HTTP status codes or exceptions returned for ``path`` before it succeeds."""
        self.failures.setdefault(path, []).extend(outcomes)

    def invalidate_tokens(self) -> None:
        self._issued_tokens.clear()

    def expire_sessions(self) -> None:
        self._sessions.clear()

    def requests_to(self, path: str, method: str = "POST") -> List[Dict[str, Any]]:
        return [r for r in self.requests if r["path"] == path and r["method"] == method]

    # ========== Rendering ==========

    def _issue_token(self) -> str:
        self._token_counter += 1
        token = f"sid:token{self._token_counter}"
        self._issued_tokens.add(token)
        return token

    def _page(self, body: str, status_code: int = 200, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        token = self._issue_token()
        document = (
            "<html><head><title>pfSense</title>"
            f'<script>var csrfMagicToken = "{token}";var csrfMagicName = "{TOKEN_NAME}";</script>'
            f"</head><body>{body}</body></html>"
        )
        return httpx.Response(status_code, text=document, headers=headers or {})

    def _login_page(self, message: str = "") -> httpx.Response:
        return self._page(
            f"<div>{message}</div>"
            '<form method="post"><input name="usernamefld"/><input name="passwordfld" type="password"/>'
            '<input type="submit" name="login" value="Sign In"/></form>'
        )

    def _script_output(self, output: str) -> httpx.Response:
        return self._page(f'<pre class="output">{html.escape(output)}</pre>')

    def _input_errors(self, errors: List[str]) -> httpx.Response:
        items = "".join(f"<li>{html.escape(error)}</li>" for error in errors)
        return self._page(
            '<div class="input-errors"><p>The following input errors were detected:</p>'
            f"<ul>{items}</ul></div>"
        )

    # ========== Request handling ==========

    def handle(self, request: httpx.Request) -> httpx.Response:
        form = dict(parse_qsl(request.content.decode(), keep_blank_values=True))
        query = dict(request.url.params)
        path = request.url.path
        self.requests.append({"method": request.method, "path": path, "form": form, "query": query})

        pending = self.failures.get(path)
        if pending:
            outcome = pending.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return httpx.Response(outcome, text="server error")

        cookie = request.headers.get("cookie", "")
        session_id = next(
            (part.split("=", 1)[1] for part in cookie.split("; ") if part.startswith(f"{SESSION_COOKIE}=")),
            None,
        )
        authenticated = session_id in self._sessions

        if request.method == "POST" and form.get(TOKEN_NAME) not in self._issued_tokens:
            return self._page("<p>CSRF check failed. Your form session may have expired.</p>")

        if path == "/":
            return self._handle_login(request, form, authenticated)

        if not authenticated:
            return self._login_page()

        handler = {
            "/diag_command.php": self._handle_diag_command,
            "/diag_edit.php": self._handle_diag_edit,
            "/pkg_mgr_install.php": self._handle_pkg_mgr,
            "/firewall_aliases.php": self._handle_aliases,
            "/firewall_aliases_edit.php": self._handle_alias_edit,
            "/status_filter_reload.php": self._handle_filter_reload,
            "/services_unbound.php": self._handle_unbound,
            "/services_unbound_domainoverride_edit.php": self._handle_domain_override_edit,
            "/services_unbound_host_edit.php": self._handle_host_override_edit,
            "/services_dhcp.php": self._handle_dhcp,
            "/services_dhcp_edit.php": self._handle_dhcp_edit,
        }.get(path)
        if handler is None:
            return httpx.Response(404, text="not found")
        return handler(form, query)

    def _handle_login(self, request: httpx.Request, form: Dict[str, str], authenticated: bool) -> httpx.Response:
        if request.method == "GET":
            return self._page("<h1>Dashboard</h1>") if authenticated else self._login_page()

        if form.get("usernamefld") != self.username or form.get("passwordfld") != self.password:
            return self._login_page("Username or Password incorrect")

        session_id = f"session{len(self._sessions) + 1}"
        self._sessions.add(session_id)
        return self._page("<h1>Dashboard</h1>", headers={"Set-Cookie": f"{SESSION_COOKIE}={session_id}; Path=/"})

    def _submit_rejected(self) -> Optional[httpx.Response]:
        if self.reject_next_submit:
            errors, self.reject_next_submit = self.reject_next_submit, []
            return self._input_errors(errors)
        return None

    # Script console

    def _handle_diag_command(self, form: Dict[str, str], query: Dict[str, str]) -> httpx.Response:
        if form.get("submit") == "EXEC":
            command = form.get("txtCommand", "")
            if command.startswith("rm "):
                self.files.pop(command[3:].strip(), None)
            return self._script_output("")

        command = form.get("txtPHPCommand", "")
        if command in self.script_outputs:
            return self._script_output(self.script_outputs[command])
        return self._script_output(json.dumps(self._evaluate(command)))

    def _evaluate(self, command: str) -> Any:
        if "['aliases']['alias']" in command:
            types = re.findall(r"'(host|network|port)'", command)
            return [
                dict(alias, controlID=index)
                for index, alias in enumerate(self.config["aliases"]["alias"])
                if alias["type"] in types
            ]
        if "['unbound']['domainoverrides']" in command:
            return self.config["unbound"]["domainoverrides"] or None
        if "['unbound']['hosts']" in command:
            return self.config["unbound"]["hosts"] or None
        if "glob('/var/unbound/conf.d/*.conf')" in command:
            return [
                {"name": path.rsplit("/", 1)[1][: -len(".conf")], "content": content}
                for path, content in sorted(self.files.items())
            ]
        match = re.search(r"\['dhcpd'\]\['(\w+)'\]\['staticmap'\]", command)
        if match:
            return self.config["dhcpd"].get(match.group(1), {}).get("staticmap") or None
        match = re.search(r"print_r\(json_encode\((.*)\)\);$", command)
        if match:
            return json.loads(match.group(1))
        return None

    def _handle_diag_edit(self, form: Dict[str, str], query: Dict[str, str]) -> httpx.Response:
        if form.get("action") != "save":
            return httpx.Response(200, text="|1|Unknown action|")
        path = form["file"]
        if not path.startswith("/var/unbound/conf.d/"):
            return httpx.Response(200, text="|1|File <b>not</b> saved.|")
        self.files[path] = base64.b64decode(form["data"]).decode()
        return httpx.Response(200, text="|0|File successfully saved.|")

    def _handle_pkg_mgr(self, form: Dict[str, str], query: Dict[str, str]) -> httpx.Response:
        return httpx.Response(200, text=json.dumps(self.version))

    # Firewall aliases

    def _handle_aliases(self, form: Dict[str, str], query: Dict[str, str]) -> httpx.Response:
        if form.get("act") == "del":
            del self.config["aliases"]["alias"][int(form["id"])]
        return self._page("<h1>Firewall: Aliases</h1>")

    def _handle_alias_edit(self, form: Dict[str, str], query: Dict[str, str]) -> httpx.Response:
        rejected = self._submit_rejected()
        if rejected is not None:
            return rejected

        aliases = self.config["aliases"]["alias"]
        control_id = int(query["id"]) if "id" in query else None
        for index, alias in enumerate(aliases):
            if alias["name"] == form["name"] and index != control_id:
                return self._input_errors(["An alias with this name already exists."])

        addresses, details = [], []
        index = 0
        while f"address{index}" in form:
            addresses.append(form[f"address{index}"])
            details.append(form.get(f"detail{index}", ""))
            index += 1

        alias = {
            "name": form["name"],
            "type": form["type"],
            "address": " ".join(addresses),
            "descr": form.get("descr", ""),
            "detail": "||".join(details),
        }
        if control_id is None:
            aliases.append(alias)
        else:
            aliases[control_id] = alias
        return self._page("<h1>Firewall: Aliases: Edit</h1>")

    def _handle_filter_reload(self, form: Dict[str, str], query: Dict[str, str]) -> httpx.Response:
        self.applied.append("filter")
        return self._page("<h1>Status: Filter Reload</h1>")

    # DNS resolver

    def _handle_unbound(self, form: Dict[str, str], query: Dict[str, str]) -> httpx.Response:
        if form.get("act") == "del":
            key = "domainoverrides" if form.get("type") == "doverride" else "hosts"
            self._remove(self.config["unbound"][key], form["id"])
        elif "apply" in form:
            self.applied.append("unbound")
        return self._page("<h1>Services: DNS Resolver</h1>")

    def _handle_domain_override_edit(self, form: Dict[str, str], query: Dict[str, str]) -> httpx.Response:
        rejected = self._submit_rejected()
        if rejected is not None:
            return rejected

        override = {
            "domain": form["domain"],
            "ip": form["ip"],
            "descr": form.get("descr", ""),
            "tls_hostname": form.get("tls_hostname", ""),
        }
        if "forward_tls_upstream" in form:
            override["forward_tls_upstream"] = ""
        self._store(self.config["unbound"]["domainoverrides"], override, query)
        return self._page("<h1>Domain Override</h1>")

    def _handle_host_override_edit(self, form: Dict[str, str], query: Dict[str, str]) -> httpx.Response:
        rejected = self._submit_rejected()
        if rejected is not None:
            return rejected

        aliases = []
        index = 0
        while f"aliasdomain{index}" in form:
            aliases.append(
                {
                    "host": form.get(f"aliashost{index}", ""),
                    "domain": form[f"aliasdomain{index}"],
                    "description": form.get(f"aliasdescription{index}", ""),
                }
            )
            index += 1

        override = {
            "host": form.get("host", ""),
            "domain": form["domain"],
            "ip": form["ip"],
            "descr": form.get("descr", ""),
            "aliases": {"item": aliases} if aliases else "",
        }
        self._store(self.config["unbound"]["hosts"], override, query)
        return self._page("<h1>Host Override</h1>")

    # DHCPv4 server

    def _handle_dhcp(self, form: Dict[str, str], query: Dict[str, str]) -> httpx.Response:
        interface = query.get("if", "lan")
        if form.get("act") == "del":
            self._remove(self.config["dhcpd"][interface]["staticmap"], form["id"])
        elif "apply" in form:
            self.applied.append(f"dhcpd:{interface}")
        return self._page("<h1>Services: DHCP Server</h1>")

    def _handle_dhcp_edit(self, form: Dict[str, str], query: Dict[str, str]) -> httpx.Response:
        rejected = self._submit_rejected()
        if rejected is not None:
            return rejected

        interface = query.get("if", "lan")
        mappings = self.config["dhcpd"].setdefault(interface, {}).setdefault("staticmap", [])
        mapping = {
            "mac": form["mac"],
            "cid": form.get("cid", ""),
            "ipaddr": form.get("ipaddr", ""),
            "hostname": form.get("hostname", ""),
            "descr": form.get("descr", ""),
            "gateway": form.get("gateway", ""),
            "domain": form.get("domain", ""),
            "domainsearchlist": form.get("domainsearchlist", ""),
            "defaultleasetime": form.get("deftime", ""),
            "maxleasetime": form.get("maxtime", ""),
        }
        if "arp_table_static_entry" in form:
            mapping["arp_table_static_entry"] = ""
        wins = [form[f"wins{n}"] for n in (1, 2) if form.get(f"wins{n}")]
        dns = [form[f"dns{n}"] for n in (1, 2, 3, 4) if form.get(f"dns{n}")]
        if wins:
            mapping["winsserver"] = wins
        if dns:
            mapping["dnsserver"] = dns
        self._store(mappings, mapping, query)
        return self._page("<h1>DHCP Static Mapping</h1>")

    # Lists keep their PHP keys; a dict stands in for an array with gaps in its keys

    @staticmethod
    def _store(items: Any, item: Dict[str, Any], query: Dict[str, str]) -> None:
        if isinstance(items, dict):
            key = query.get("id", str(max((int(k) for k in items), default=-1) + 1))
            items[key] = item
        elif "id" in query:
            items[int(query["id"])] = item
        else:
            items.append(item)

    @staticmethod
    def _remove(items: Any, control_id: str) -> None:
        if isinstance(items, dict):
            del items[control_id]
        else:
            del items[int(control_id)]


# ========== Configuration Fixtures ==========


@pytest.fixture
def mock_pfsense_config() -> PfSenseConfig:
    """Provide a pfSense configuration pointing at the fake console."""
    return PfSenseConfig(
        url=BASE_URL,
        username="admin",
        password="pfsense",
        verify_ssl=False,
        retry_min_wait=0.0,
        retry_max_wait=0.0,
    )


@pytest.fixture
def mock_pfsense_config_dict() -> Dict[str, Any]:
    """Provide a dictionary version of the pfSense configuration."""
    return {
        "url": BASE_URL,
        "username": "admin",
        "password": "pfsense",
        "verify_ssl": False,
    }


# ========== Fake Console Fixtures ==========


@pytest.fixture
def fake_console() -> FakeConsole:
    return FakeConsole()


@pytest.fixture
def console_transport(fake_console) -> httpx.MockTransport:
    return httpx.MockTransport(fake_console.handle)


@pytest_asyncio.fixture
async def pfsense_client(mock_pfsense_config, console_transport):
    """Provide a client logged in to the fake console."""
    client = await connect(mock_pfsense_config, transport=console_transport)
    yield client
    await client.close()


@pytest_asyncio.fixture
async def unauthenticated_client(mock_pfsense_config, console_transport):
    client = PfSenseClient(mock_pfsense_config, transport=console_transport)
    yield client
    await client.close()


# ========== MCP Context Mocks ==========


@pytest.fixture
def mock_mcp_context():
    """Provide a mock MCP context for tool testing."""
    context = Mock()
    context.info = AsyncMock()
    context.warn = AsyncMock()
    context.error = AsyncMock()
    context.debug = AsyncMock()
    return context


# ========== Pytest Configuration ==========


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "asyncio: mark test as an asyncio test")
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
