"""
pfSense MCP Server - DHCPv4 Static Mappings

Static leases live in one positional list per interface,
``$config['dhcpd'][<interface>]['staticmap']``, and are identified by MAC
address within that list.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..core.decoding import AddressList, PresenceFlag, Seconds, delimited
from ..core.locks import LockCategory
from ..shared.constants import DOMAIN_SEARCH_LIST_SEP, PAGE_DHCP, PAGE_DHCP_EDIT, SAVE_VALUE
from ..shared.error_handlers import (
    validate_domain,
    validate_interface,
    validate_ip_address,
    validate_mac_address,
)
from .base import Entry, ResourceAccessor, decode_positional_records


class DHCPv4StaticMapping(BaseModel):
    """Fixed DHCPv4 lease for one client on one interface."""

    interface: str
    mac_address: str
    client_identifier: str = ""
    ip_address: str = ""
    arp_table_static_entry: bool = False
    hostname: str = ""
    description: str = ""
    wins_servers: List[str] = Field(default_factory=list, max_length=2)
    dns_servers: List[str] = Field(default_factory=list, max_length=4)
    gateway: str = ""
    domain_name: str = ""
    domain_search_list: List[str] = Field(default_factory=list)
    default_lease_time: Seconds = None
    maximum_lease_time: Seconds = None

    @field_validator("interface")
    @classmethod
    def check_interface(cls, v):
        return validate_interface(v)

    @field_validator("mac_address")
    @classmethod
    def check_mac_address(cls, v):
        return validate_mac_address(v)

    @field_validator("ip_address", "gateway")
    @classmethod
    def check_optional_address(cls, v):
        return validate_ip_address(v, "IPv4") if v else v

    @field_validator("wins_servers", "dns_servers")
    @classmethod
    def check_servers(cls, v):
        return [validate_ip_address(address) for address in v]

    @field_validator("domain_name")
    @classmethod
    def check_domain_name(cls, v):
        return validate_domain(v) if v else v

    @field_validator("domain_search_list")
    @classmethod
    def check_domain_search_list(cls, v):
        return [validate_domain(domain) for domain in v]


class _StaticMappingResponse(BaseModel):
    mac: str
    cid: Optional[str] = ""
    ipaddr: Optional[str] = ""
    arp_table_static_entry: PresenceFlag = False
    hostname: Optional[str] = ""
    descr: Optional[str] = ""
    winsserver: AddressList = Field(default_factory=list)
    dnsserver: AddressList = Field(default_factory=list)
    gateway: Optional[str] = ""
    domain: Optional[str] = ""
    domainsearchlist: List[str] = Field(default_factory=list)
    defaultleasetime: Seconds = None
    maxleasetime: Seconds = None

    @field_validator("domainsearchlist", mode="before")
    @classmethod
    def split_search_list(cls, v):
        return delimited(DOMAIN_SEARCH_LIST_SEP)(v)

    def to_record(self, interface: str) -> DHCPv4StaticMapping:
        return DHCPv4StaticMapping.model_construct(
            interface=interface,
            mac_address=self.mac.lower(),
            client_identifier=self.cid or "",
            ip_address=self.ipaddr or "",
            arp_table_static_entry=self.arp_table_static_entry,
            hostname=self.hostname or "",
            description=self.descr or "",
            wins_servers=self.winsserver,
            dns_servers=self.dnsserver,
            gateway=self.gateway or "",
            domain_name=self.domain or "",
            domain_search_list=self.domainsearchlist,
            default_lease_time=self.defaultleasetime,
            maximum_lease_time=self.maxleasetime,
        )


def _format_seconds(value) -> str:
    if value is None:
        return ""
    return str(int(value.total_seconds()))


class DHCPv4StaticMappingAccessor(ResourceAccessor[DHCPv4StaticMapping]):
    model = DHCPv4StaticMapping
    category = LockCategory.DHCPV4_STATIC_MAPPING
    resource_name = "DHCPv4 static mapping"
    plural_name = "DHCPv4 static mappings"
    key_field = "mac_address"

    def normalize_key(self, key: Any) -> str:
        return str(key).lower()

    def scope_of(self, record: DHCPv4StaticMapping) -> Dict[str, Any]:
        return {"interface": record.interface}

    async def fetch(self, interface: str = "lan", **scope: Any) -> List[Entry[DHCPv4StaticMapping]]:
        validate_interface(interface)
        raw = await self.client.read_config(f"['dhcpd']['{interface}']['staticmap']")
        responses = decode_positional_records(_StaticMappingResponse, raw, self.resource_name)
        return [Entry(control_id=control_id, record=response.to_record(interface)) for control_id, response in responses]

    async def submit(self, record: DHCPv4StaticMapping, control_id: Optional[int]) -> None:
        fields = {
            "mac": record.mac_address,
            "cid": record.client_identifier,
            "ipaddr": record.ip_address,
            "hostname": record.hostname,
            "descr": record.description,
            "gateway": record.gateway,
            "domain": record.domain_name,
            "domainsearchlist": DOMAIN_SEARCH_LIST_SEP.join(record.domain_search_list),
            "deftime": _format_seconds(record.default_lease_time),
            "maxtime": _format_seconds(record.maximum_lease_time),
            "save": SAVE_VALUE,
        }
        if record.arp_table_static_entry:
            fields["arp_table_static_entry"] = "yes"
        for index, server in enumerate(record.wins_servers, start=1):
            fields[f"wins{index}"] = server
        for index, server in enumerate(record.dns_servers, start=1):
            fields[f"dns{index}"] = server

        await self.client.submit_form(
            PAGE_DHCP_EDIT,
            fields,
            control_id=control_id,
            params={"if": record.interface},
            operation="save_dhcpv4_static_mapping",
        )

    async def remove(self, entry: Entry[DHCPv4StaticMapping], interface: str = "lan", **scope: Any) -> None:
        await self.client.submit_delete(
            PAGE_DHCP, entry.control_id, params={"if": interface}, operation="delete_dhcpv4_static_mapping"
        )
