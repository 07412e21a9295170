"""
pfSense MCP Server - Firewall Aliases

IP aliases (host and network types) and port aliases share one ordered list in
the configuration, ``$config['aliases']['alias']``. The script console tags
each alias with its position in that shared list, which is what the edit and
delete pages expect.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..core.decoding import as_list
from ..core.exceptions import ParseError
from ..core.locks import LockCategory
from ..shared.constants import (
    ALIAS_ADDRESS_SEP,
    ALIAS_DETAIL_SEP,
    IP_ALIAS_TYPES,
    PAGE_FIREWALL_ALIASES,
    PAGE_FIREWALL_ALIASES_EDIT,
    PORT_ALIAS_TYPES,
    SAVE_VALUE,
)
from ..shared.error_handlers import validate_alias_name, validate_port, validate_port_range
from .base import Entry, ResourceAccessor, decode_records


class FirewallAliasEntry(BaseModel):
    """One address (or port) of an alias with its description."""

    address: str
    description: str = ""

    @field_validator("description")
    @classmethod
    def validate_description(cls, v):
        if ALIAS_DETAIL_SEP in v:
            raise ValueError(f"description cannot contain '{ALIAS_DETAIL_SEP}'")
        return v


class FirewallIPAlias(BaseModel):
    """Alias of hosts or networks. Addresses may be IPs, CIDRs, FQDNs or other aliases."""

    name: str
    description: str = ""
    type: Literal["host", "network"] = "host"
    entries: List[FirewallAliasEntry] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return validate_alias_name(v)

    @field_validator("entries")
    @classmethod
    def validate_entries(cls, v):
        for entry in v:
            if not entry.address or ALIAS_ADDRESS_SEP in entry.address:
                raise ValueError(f"invalid alias address '{entry.address}'")
        return v


class FirewallPortAlias(BaseModel):
    """Alias of ports and ``start:end`` port ranges."""

    name: str
    description: str = ""
    entries: List[FirewallAliasEntry] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return validate_alias_name(v)

    @field_validator("entries")
    @classmethod
    def validate_entries(cls, v):
        for entry in v:
            if ":" in entry.address:
                validate_port_range(entry.address)
            else:
                validate_port(entry.address)
        return v


class _FirewallAliasResponse(BaseModel):
    name: str
    descr: str = ""
    type: str
    address: str = ""
    detail: str = ""
    control_id: int = Field(alias="controlID")

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    def to_entries(self) -> List[FirewallAliasEntry]:
        if self.address == "":
            return []

        addresses = self.address.split(ALIAS_ADDRESS_SEP)
        details = self.detail.split(ALIAS_DETAIL_SEP)
        if len(addresses) != len(details):
            raise ParseError(
                f"unable to parse firewall alias '{self.name}', addresses and descriptions do not match",
                context={"addresses": len(addresses), "details": len(details)},
            )
        return [FirewallAliasEntry(address=a, description=d) for a, d in zip(addresses, details)]


def _list_aliases_command(types) -> str:
    wanted = ", ".join(f"'{t}'" for t in types)
    return (
        "$output = array();"
        "array_walk($config['aliases']['alias'], function(&$v, $k) use (&$output) {"
        f"if (in_array($v['type'], array({wanted}))) {{"
        "$v['controlID'] = $k; array_push($output, $v);"
        "}});"
        "print_r(json_encode($output));"
    )


class _FirewallAliasAccessor(ResourceAccessor):
    category = LockCategory.FIREWALL_ALIAS
    alias_types: tuple = ()

    async def _fetch_responses(self) -> List[_FirewallAliasResponse]:
        raw = await self.client.run_php_command(_list_aliases_command(self.alias_types))
        return decode_records(_FirewallAliasResponse, as_list(raw), self.resource_name)

    def _form_fields(self, record, alias_type: str) -> Dict[str, str]:
        fields = {
            "name": record.name,
            "descr": record.description,
            "type": alias_type,
            "save": SAVE_VALUE,
        }
        for index, entry in enumerate(record.entries):
            fields[f"address{index}"] = entry.address
            fields[f"detail{index}"] = entry.description
        return fields

    async def remove(self, entry: Entry, **scope: Any) -> None:
        await self.client.submit_delete(PAGE_FIREWALL_ALIASES, entry.control_id, operation="delete_firewall_alias")


class FirewallIPAliasAccessor(_FirewallAliasAccessor):
    model = FirewallIPAlias
    resource_name = "firewall IP alias"
    plural_name = "firewall IP aliases"
    alias_types = IP_ALIAS_TYPES

    async def fetch(self, **scope: Any) -> List[Entry[FirewallIPAlias]]:
        return [
            Entry(
                control_id=response.control_id,
                record=FirewallIPAlias.model_construct(
                    name=response.name,
                    description=response.descr,
                    type=response.type,
                    entries=response.to_entries(),
                ),
            )
            for response in await self._fetch_responses()
        ]

    async def submit(self, record: FirewallIPAlias, control_id: Optional[int]) -> None:
        await self.client.submit_form(
            PAGE_FIREWALL_ALIASES_EDIT,
            self._form_fields(record, record.type),
            control_id=control_id,
            operation="save_firewall_ip_alias",
        )


class FirewallPortAliasAccessor(_FirewallAliasAccessor):
    model = FirewallPortAlias
    resource_name = "firewall port alias"
    plural_name = "firewall port aliases"
    alias_types = PORT_ALIAS_TYPES

    async def fetch(self, **scope: Any) -> List[Entry[FirewallPortAlias]]:
        return [
            Entry(
                control_id=response.control_id,
                record=FirewallPortAlias.model_construct(
                    name=response.name,
                    description=response.descr,
                    entries=response.to_entries(),
                ),
            )
            for response in await self._fetch_responses()
        ]

    async def submit(self, record: FirewallPortAlias, control_id: Optional[int]) -> None:
        await self.client.submit_form(
            PAGE_FIREWALL_ALIASES_EDIT,
            self._form_fields(record, PORT_ALIAS_TYPES[0]),
            control_id=control_id,
            operation="save_firewall_port_alias",
        )
