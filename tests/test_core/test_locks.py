"""
Tests for pfSense MCP Server lock coordination.
"""

import asyncio

import pytest

from src.pfsense_mcp.core.locks import Coordinator, LockCategory, ReadWriteLock


async def _hold(coordinator, mode, category, name, log, delay=0.01):
    async with getattr(coordinator, mode)(category):
        log.append(("start", name))
        await asyncio.sleep(delay)
        log.append(("end", name))


def _overlapping(log):
    active = 0
    for event, _ in log:
        active += 1 if event == "start" else -1
        if active > 1:
            return True
    return False


@pytest.mark.asyncio
class TestReadWriteLock:
    async def test_readers_share(self):
        lock = ReadWriteLock()
        await lock.acquire_read()
        await lock.acquire_read()

        assert lock.readers == 2

        await lock.release_read()
        await lock.release_read()
        assert lock.readers == 0

    async def test_writer_waits_for_readers(self):
        lock = ReadWriteLock()
        await lock.acquire_read()

        writer = asyncio.create_task(lock.acquire_write())
        await asyncio.sleep(0.01)
        assert not writer.done()

        await lock.release_read()
        await asyncio.wait_for(writer, timeout=1)
        assert lock.writer is True
        await lock.release_write()

    async def test_waiting_writer_blocks_new_readers(self):
        lock = ReadWriteLock()
        await lock.acquire_read()
        writer = asyncio.create_task(lock.acquire_write())
        await asyncio.sleep(0.01)

        reader = asyncio.create_task(lock.acquire_read())
        await asyncio.sleep(0.01)
        assert not reader.done()

        await lock.release_read()
        await asyncio.wait_for(writer, timeout=1)
        assert not reader.done()

        await lock.release_write()
        await asyncio.wait_for(reader, timeout=1)
        await lock.release_read()


@pytest.mark.asyncio
class TestCoordinator:
    async def test_writes_in_different_categories_never_overlap_when_serialized(self):
        coordinator = Coordinator(serialize_all_writes=True)
        log = []

        await asyncio.gather(
            _hold(coordinator, "write", LockCategory.FIREWALL_ALIAS, "alias", log),
            _hold(coordinator, "write", LockCategory.DNS_RESOLVER_HOST_OVERRIDE, "host", log),
            _hold(coordinator, "write", LockCategory.DHCPV4_STATIC_MAPPING, "dhcp", log),
        )

        assert len(log) == 6
        assert not _overlapping(log)

    async def test_writes_in_different_categories_overlap_without_serialization(self):
        coordinator = Coordinator(serialize_all_writes=False)
        log = []

        await asyncio.gather(
            _hold(coordinator, "write", LockCategory.FIREWALL_ALIAS, "alias", log),
            _hold(coordinator, "write", LockCategory.DNS_RESOLVER_HOST_OVERRIDE, "host", log),
        )

        assert _overlapping(log)

    async def test_writes_in_same_category_serialize_without_global_lock(self):
        coordinator = Coordinator(serialize_all_writes=False)
        log = []

        await asyncio.gather(
            _hold(coordinator, "write", LockCategory.FIREWALL_ALIAS, "first", log),
            _hold(coordinator, "write", LockCategory.FIREWALL_ALIAS, "second", log),
        )

        assert not _overlapping(log)

    async def test_reads_share_category(self):
        coordinator = Coordinator()
        log = []

        await asyncio.gather(
            _hold(coordinator, "read", LockCategory.FIREWALL_ALIAS, "first", log),
            _hold(coordinator, "read", LockCategory.FIREWALL_ALIAS, "second", log),
        )

        assert _overlapping(log)

    async def test_reads_do_not_take_global_lock(self):
        coordinator = Coordinator(serialize_all_writes=True)
        release = await coordinator.acquire_write(LockCategory.FIREWALL_ALIAS)

        read_release = await asyncio.wait_for(coordinator.acquire_read(LockCategory.DHCPV4_STATIC_MAPPING), timeout=1)
        await read_release()
        await release()

        assert not coordinator.global_lock.locked()

    async def test_release_functions_free_locks(self):
        coordinator = Coordinator(serialize_all_writes=True)
        release = await coordinator.acquire_write(LockCategory.SYSTEM)

        assert coordinator.global_lock.locked()
        assert coordinator.lock_for(LockCategory.SYSTEM).writer is True

        await release()

        assert not coordinator.global_lock.locked()
        assert coordinator.lock_for(LockCategory.SYSTEM).writer is False

    async def test_lock_released_when_body_raises(self):
        coordinator = Coordinator()

        with pytest.raises(RuntimeError):
            async with coordinator.write(LockCategory.FIREWALL_ALIAS):
                raise RuntimeError("boom")

        assert not coordinator.global_lock.locked()
        assert coordinator.lock_for(LockCategory.FIREWALL_ALIAS).writer is False

    async def test_each_coordinator_owns_its_locks(self):
        first, second = Coordinator(), Coordinator()
        release = await first.acquire_write(LockCategory.FIREWALL_ALIAS)

        other = await asyncio.wait_for(second.acquire_write(LockCategory.FIREWALL_ALIAS), timeout=1)
        await other()
        await release()
