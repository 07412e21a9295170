"""
pfSense MCP Server - DNS Resolver Resources

Domain overrides, host overrides and custom configuration files of the DNS
resolver (unbound). Overrides are positional lists under
``$config['unbound']``; configuration files live on disk in the resolver's
include directory and are addressed by name.
"""

import base64
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..core.decoding import PresenceFlag, as_list, delimited
from ..core.exceptions import ServerValidationError
from ..core.html import sanitize_message
from ..core.locks import LockCategory
from ..shared.constants import (
    CONFIG_FILE_DIR,
    CONFIG_FILE_EXT,
    DEFAULT_DNS_PORT,
    DEFAULT_TLS_DNS_PORT,
    DOMAIN_OVERRIDE_PORT_SEP,
    HOST_OVERRIDE_ADDRESS_SEP,
    PAGE_DIAG_EDIT,
    PAGE_UNBOUND,
    PAGE_UNBOUND_DOMAIN_OVERRIDE_EDIT,
    PAGE_UNBOUND_HOST_OVERRIDE_EDIT,
    SAVE_VALUE,
)
from ..shared.error_handlers import (
    validate_config_file_name,
    validate_dns_label,
    validate_domain,
    validate_ip_address,
)
from .base import Entry, ResourceAccessor, decode_positional_records, decode_records

# ========== DOMAIN OVERRIDES ==========


class DomainOverride(BaseModel):
    """Forward queries for a domain to another server."""

    domain: str
    ip_address: str
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    tls_queries: bool = False
    tls_hostname: str = ""
    description: str = ""

    @field_validator("domain")
    @classmethod
    def check_domain(cls, v):
        return validate_domain(v)

    @field_validator("ip_address")
    @classmethod
    def check_ip_address(cls, v):
        return validate_ip_address(v)

    @property
    def effective_port(self) -> int:
        """Port queries are sent to, 853 for TLS and 53 otherwise when unset."""
        if self.port is not None:
            return self.port
        return DEFAULT_TLS_DNS_PORT if self.tls_queries else DEFAULT_DNS_PORT

    def format_address(self) -> str:
        if self.port is None:
            return self.ip_address
        return f"{self.ip_address}{DOMAIN_OVERRIDE_PORT_SEP}{self.port}"


class _DomainOverrideResponse(BaseModel):
    domain: str
    ip: str
    forward_tls_upstream: PresenceFlag = False
    tls_hostname: Optional[str] = ""
    descr: Optional[str] = ""

    def to_record(self) -> DomainOverride:
        address, sep, port = self.ip.rpartition(DOMAIN_OVERRIDE_PORT_SEP)
        if not sep:
            address, port = self.ip, ""
        return DomainOverride.model_construct(
            domain=self.domain,
            ip_address=address,
            port=int(port) if port else None,
            tls_queries=self.forward_tls_upstream,
            tls_hostname=self.tls_hostname or "",
            description=self.descr or "",
        )


class DomainOverrideAccessor(ResourceAccessor[DomainOverride]):
    model = DomainOverride
    category = LockCategory.DNS_RESOLVER_DOMAIN_OVERRIDE
    resource_name = "domain override"
    plural_name = "domain overrides"
    key_field = "domain"

    async def fetch(self, **scope: Any) -> List[Entry[DomainOverride]]:
        raw = await self.client.read_config("['unbound']['domainoverrides']")
        responses = decode_positional_records(_DomainOverrideResponse, raw, self.resource_name)
        return [Entry(control_id=control_id, record=response.to_record()) for control_id, response in responses]

    async def submit(self, record: DomainOverride, control_id: Optional[int]) -> None:
        fields = {
            "domain": record.domain,
            "ip": record.format_address(),
            "tls_hostname": record.tls_hostname,
            "descr": record.description,
            "save": SAVE_VALUE,
        }
        if record.tls_queries:
            fields["forward_tls_upstream"] = "yes"

        await self.client.submit_form(
            PAGE_UNBOUND_DOMAIN_OVERRIDE_EDIT, fields, control_id=control_id, operation="save_domain_override"
        )

    async def remove(self, entry: Entry[DomainOverride], **scope: Any) -> None:
        await self.client.submit_delete(
            PAGE_UNBOUND, entry.control_id, {"type": "doverride"}, operation="delete_domain_override"
        )


# ========== HOST OVERRIDES ==========


class HostOverrideAlias(BaseModel):
    """Additional name answered with the addresses of the host override."""

    host: str = ""
    domain: str
    description: str = ""

    @field_validator("host")
    @classmethod
    def check_host(cls, v):
        return validate_dns_label(v) if v else v

    @field_validator("domain")
    @classmethod
    def check_domain(cls, v):
        return validate_domain(v)

    @property
    def fqdn(self) -> str:
        return ".".join(part for part in (self.host, self.domain) if part)


class HostOverride(BaseModel):
    """Answer queries for a host with fixed addresses."""

    host: str = ""
    domain: str
    ip_addresses: List[str]
    description: str = ""
    aliases: List[HostOverrideAlias] = Field(default_factory=list)

    @field_validator("host")
    @classmethod
    def check_host(cls, v):
        return validate_dns_label(v) if v else v

    @field_validator("domain")
    @classmethod
    def check_domain(cls, v):
        return validate_domain(v)

    @field_validator("ip_addresses")
    @classmethod
    def validate_ip_addresses(cls, v):
        if not v:
            raise ValueError("at least one ip address is required")
        return [validate_ip_address(address) for address in v]

    @property
    def fqdn(self) -> str:
        return ".".join(part for part in (self.host, self.domain) if part)


class _HostOverrideAliasResponse(BaseModel):
    host: Optional[str] = ""
    domain: Optional[str] = ""
    description: Optional[str] = ""


class _HostOverrideResponse(BaseModel):
    host: Optional[str] = ""
    domain: str
    ip: List[str] = Field(default_factory=list)
    descr: Optional[str] = ""
    aliases: List[_HostOverrideAliasResponse] = Field(default_factory=list)

    @field_validator("ip", mode="before")
    @classmethod
    def split_addresses(cls, v):
        return delimited(HOST_OVERRIDE_ADDRESS_SEP)(v)

    @field_validator("aliases", mode="before")
    @classmethod
    def unwrap_items(cls, v):
        # Stored as {"item": [...]}, or an empty string when there are none
        if not isinstance(v, dict):
            return []
        return as_list(v.get("item"))

    def to_record(self) -> HostOverride:
        return HostOverride.model_construct(
            host=self.host or "",
            domain=self.domain,
            ip_addresses=self.ip,
            description=self.descr or "",
            aliases=[
                HostOverrideAlias.model_construct(
                    host=alias.host or "", domain=alias.domain or "", description=alias.description or ""
                )
                for alias in self.aliases
            ],
        )


class HostOverrideAccessor(ResourceAccessor[HostOverride]):
    model = HostOverride
    category = LockCategory.DNS_RESOLVER_HOST_OVERRIDE
    resource_name = "host override"
    plural_name = "host overrides"
    key_field = "fqdn"

    def key_of(self, record: HostOverride) -> str:
        return self.normalize_key(record.fqdn)

    async def fetch(self, **scope: Any) -> List[Entry[HostOverride]]:
        raw = await self.client.read_config("['unbound']['hosts']")
        responses = decode_positional_records(_HostOverrideResponse, raw, self.resource_name)
        return [Entry(control_id=control_id, record=response.to_record()) for control_id, response in responses]

    async def submit(self, record: HostOverride, control_id: Optional[int]) -> None:
        fields = {
            "host": record.host,
            "domain": record.domain,
            "ip": HOST_OVERRIDE_ADDRESS_SEP.join(record.ip_addresses),
            "descr": record.description,
            "save": SAVE_VALUE,
        }
        for index, alias in enumerate(record.aliases):
            fields[f"aliashost{index}"] = alias.host
            fields[f"aliasdomain{index}"] = alias.domain
            fields[f"aliasdescription{index}"] = alias.description

        await self.client.submit_form(
            PAGE_UNBOUND_HOST_OVERRIDE_EDIT, fields, control_id=control_id, operation="save_host_override"
        )

    async def remove(self, entry: Entry[HostOverride], **scope: Any) -> None:
        await self.client.submit_delete(
            PAGE_UNBOUND, entry.control_id, {"type": "host"}, operation="delete_host_override"
        )


# ========== CONFIGURATION FILES ==========


class ConfigFile(BaseModel):
    """Custom resolver configuration included from the resolver's conf.d directory."""

    name: str
    content: str = ""

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return validate_config_file_name(v)

    @property
    def path(self) -> str:
        return config_file_path(self.name)


def config_file_path(name: str) -> str:
    return f"{CONFIG_FILE_DIR}/{name}.{CONFIG_FILE_EXT}"


class _ConfigFileResponse(BaseModel):
    name: str
    content: Optional[str] = ""

    @model_validator(mode="after")
    def check_name(self):
        validate_config_file_name(self.name)
        return self


class ConfigFileAccessor(ResourceAccessor[ConfigFile]):
    model = ConfigFile
    category = LockCategory.DNS_RESOLVER_CONFIG_FILE
    resource_name = "config file"
    plural_name = "config files"

    async def fetch(self, **scope: Any) -> List[Entry[ConfigFile]]:
        command = (
            "print_r(json_encode(array_map(function ($filename) {"
            f"$configs['name'] = basename($filename, '.{CONFIG_FILE_EXT}');"
            "$configs['content'] = file_get_contents($filename);"
            "return $configs;"
            f"}}, glob('{CONFIG_FILE_DIR}/*.{CONFIG_FILE_EXT}'))));"
        )
        raw = await self.client.run_php_command(command)
        responses = decode_records(_ConfigFileResponse, as_list(raw), self.resource_name)
        # Files are addressed by path, not by position
        return [
            Entry(control_id=None, record=ConfigFile.model_construct(name=r.name, content=r.content or ""))
            for r in responses
        ]

    async def submit(self, record: ConfigFile, control_id: Optional[int]) -> None:
        response = await self.client.submit_raw(
            PAGE_DIAG_EDIT,
            {
                "file": record.path,
                "action": "save",
                "data": base64.b64encode(record.content.encode()).decode(),
            },
            operation="save_config_file",
        )
        message = sanitize_message(response.text.strip().strip("|"))
        if "success" not in message:
            raise ServerValidationError(
                f"unexpected response saving config file, '{message}'",
                field_errors=[message],
                context={"path": record.path},
            )

    async def remove(self, entry: Entry[ConfigFile], **scope: Any) -> None:
        await self.client.run_shell_command(f"rm {entry.record.path}")
