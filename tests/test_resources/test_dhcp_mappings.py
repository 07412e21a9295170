"""
Tests for pfSense MCP Server DHCPv4 static mapping resources.
"""

from datetime import timedelta

import pytest

from src.pfsense_mcp.core.exceptions import (
    CreateOperationFailed,
    DeleteOperationFailed,
    GetOperationFailed,
    ResourceNotFoundError,
)
from src.pfsense_mcp.resources import DHCPv4StaticMapping

MAPPING = {
    "interface": "lan",
    "mac_address": "AA:BB:CC:00:11:22",
    "ip_address": "192.168.1.50",
    "hostname": "printer",
    "description": "office printer",
    "arp_table_static_entry": True,
    "dns_servers": ["192.168.1.1", "9.9.9.9"],
    "wins_servers": ["192.168.1.2"],
    "domain_name": "office.example",
    "domain_search_list": ["office.example", "example.com"],
    "default_lease_time": 3600,
    "maximum_lease_time": 86400,
}


@pytest.mark.asyncio
class TestDHCPv4StaticMappings:
    async def test_create_round_trip(self, pfsense_client, fake_console):
        created = await pfsense_client.dhcpv4_static_mappings.create(MAPPING)

        assert created.mac_address == "aa:bb:cc:00:11:22"
        assert created.dns_servers == ["192.168.1.1", "9.9.9.9"]
        assert created.domain_search_list == ["office.example", "example.com"]
        assert created.default_lease_time == timedelta(hours=1)
        assert created.arp_table_static_entry is True

        request = fake_console.requests_to("/services_dhcp_edit.php")[-1]
        assert request["query"] == {"if": "lan"}
        assert request["form"]["domainsearchlist"] == "office.example;example.com"
        assert request["form"]["dns2"] == "9.9.9.9"
        assert request["form"]["deftime"] == "3600"

    async def test_lookup_is_case_insensitive(self, pfsense_client, fake_console):
        fake_console.config["dhcpd"]["lan"]["staticmap"] = [{"mac": "AA:BB:CC:00:11:22", "ipaddr": "192.168.1.50"}]

        mapping = await pfsense_client.dhcpv4_static_mappings.get("aa:bb:cc:00:11:22")

        assert mapping.ip_address == "192.168.1.50"
        assert mapping.interface == "lan"
        assert mapping.default_lease_time is None

    async def test_interfaces_are_separate_lists(self, pfsense_client, fake_console):
        fake_console.config["dhcpd"]["opt1"] = {"staticmap": [{"mac": "aa:bb:cc:00:11:22"}]}

        assert await pfsense_client.dhcpv4_static_mappings.get_all() == []
        mappings = await pfsense_client.dhcpv4_static_mappings.get_all(interface="opt1")
        assert [m.interface for m in mappings] == ["opt1"]

    async def test_unknown_interface_has_no_mappings(self, pfsense_client):
        assert await pfsense_client.dhcpv4_static_mappings.get_all(interface="opt9") == []

    async def test_invalid_interface(self, pfsense_client, fake_console):
        requests_before = len(fake_console.requests)

        with pytest.raises(GetOperationFailed):
            await pfsense_client.dhcpv4_static_mappings.get_all(interface="lan; rm")

        assert len(fake_console.requests) == requests_before

    async def test_update_and_delete(self, pfsense_client, fake_console):
        await pfsense_client.dhcpv4_static_mappings.create(MAPPING)

        updated = await pfsense_client.dhcpv4_static_mappings.update(dict(MAPPING, hostname="printer2"))
        assert updated.hostname == "printer2"
        assert fake_console.requests_to("/services_dhcp_edit.php")[-1]["query"] == {"if": "lan", "id": "0"}

        await pfsense_client.dhcpv4_static_mappings.delete("AA:BB:CC:00:11:22", interface="lan")
        assert fake_console.config["dhcpd"]["lan"]["staticmap"] == []
        assert fake_console.requests_to("/services_dhcp.php")[-1]["query"] == {"if": "lan"}

    async def test_delete_in_gapped_list_uses_console_position(self, pfsense_client, fake_console):
        fake_console.config["dhcpd"]["lan"]["staticmap"] = {
            "0": {"mac": "aa:bb:cc:00:00:01", "ipaddr": "192.168.1.10"},
            "3": {"mac": "aa:bb:cc:00:00:04", "ipaddr": "192.168.1.40"},
        }

        await pfsense_client.dhcpv4_static_mappings.delete("aa:bb:cc:00:00:04")

        request = fake_console.requests_to("/services_dhcp.php")[-1]
        assert request["form"]["id"] == "3"
        assert list(fake_console.config["dhcpd"]["lan"]["staticmap"]) == ["0"]

    async def test_delete_missing(self, pfsense_client):
        with pytest.raises(DeleteOperationFailed) as exc_info:
            await pfsense_client.dhcpv4_static_mappings.delete("aa:bb:cc:00:11:22")

        assert isinstance(exc_info.value.root_cause, ResourceNotFoundError)

    async def test_too_many_dns_servers(self, pfsense_client):
        with pytest.raises(CreateOperationFailed):
            await pfsense_client.dhcpv4_static_mappings.create(
                dict(MAPPING, dns_servers=["10.0.0.1", "10.0.0.2", "10.0.0.3", "10.0.0.4", "10.0.0.5"])
            )

    @pytest.mark.parametrize("mac", ["aabbcc001122", "aa:bb:cc:00:11", "zz:bb:cc:00:11:22"])
    def test_invalid_mac(self, mac):
        with pytest.raises(ValueError):
            DHCPv4StaticMapping(interface="lan", mac_address=mac)

    def test_ip_address_must_be_ipv4(self):
        with pytest.raises(ValueError):
            DHCPv4StaticMapping(interface="lan", mac_address="aa:bb:cc:00:11:22", ip_address="fd00::1")
