"""
pfSense MCP Server - Concurrency Coordination

This module serializes mutations against the remote configuration store. Each
resource category has its own shared/exclusive lock; an optional global lock
orders every write across categories, because several categories live in the
same underlying ordered list and a write to one can renumber position indices
another in-flight write relies on.
"""

import asyncio
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Dict

Release = Callable[[], Awaitable[None]]


class LockCategory(str, Enum):
    """Resource categories guarded by their own lock."""

    FIREWALL_ALIAS = "firewall_alias"
    FIREWALL_FILTER = "firewall_filter"
    DHCPV4_STATIC_MAPPING = "dhcpv4_static_mapping"
    DHCPV4_APPLY = "dhcpv4_apply"
    DNS_RESOLVER_DOMAIN_OVERRIDE = "dns_resolver_domain_override"
    DNS_RESOLVER_HOST_OVERRIDE = "dns_resolver_host_override"
    DNS_RESOLVER_CONFIG_FILE = "dns_resolver_config_file"
    DNS_RESOLVER_APPLY = "dns_resolver_apply"
    EXECUTE_SCRIPT = "execute_script"
    SYSTEM = "system"


class ReadWriteLock:
    """Shared/exclusive lock for asyncio tasks.

    Readers share the lock, a writer holds it alone. A waiting writer blocks
    new readers so writes are not starved.
    """

    def __init__(self):
        self._condition = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def writer(self) -> bool:
        return self._writer

    async def acquire_read(self) -> None:
        async with self._condition:
            await self._condition.wait_for(lambda: not self._writer and self._waiting_writers == 0)
            self._readers += 1

    async def release_read(self) -> None:
        async with self._condition:
            self._readers -= 1
            if self._readers == 0:
                self._condition.notify_all()

    async def acquire_write(self) -> None:
        async with self._condition:
            self._waiting_writers += 1
            try:
                await self._condition.wait_for(lambda: not self._writer and self._readers == 0)
            finally:
                self._waiting_writers -= 1
                if not self._writer and self._waiting_writers == 0:
                    self._condition.notify_all()
            self._writer = True

    async def release_write(self) -> None:
        async with self._condition:
            self._writer = False
            self._condition.notify_all()


class Coordinator:
    """Lock matrix owned by one client instance.

    Args:
        serialize_all_writes: Take the global write lock before every category
            write lock (and release it after). Disabling this is only safe for
            categories that do not share an underlying list.
    """

    def __init__(self, serialize_all_writes: bool = True):
        self.serialize_all_writes = serialize_all_writes
        self.global_lock = asyncio.Lock()
        self.locks: Dict[LockCategory, ReadWriteLock] = {
            category: ReadWriteLock() for category in LockCategory
        }

    def lock_for(self, category: LockCategory) -> ReadWriteLock:
        return self.locks[LockCategory(category)]

    async def acquire_read(self, category: LockCategory) -> Release:
        """Take the category's shared lock and return its release function."""
        lock = self.lock_for(category)
        await lock.acquire_read()

        async def release() -> None:
            await lock.release_read()

        return release

    async def acquire_write(self, category: LockCategory) -> Release:
        """Take the category's exclusive lock and return its release function.

        Under global serialization the global lock is acquired first and
        released last.
        """
        lock = self.lock_for(category)

        if self.serialize_all_writes:
            await self.global_lock.acquire()
            try:
                await lock.acquire_write()
            except BaseException:
                self.global_lock.release()
                raise
        else:
            await lock.acquire_write()

        async def release() -> None:
            try:
                await lock.release_write()
            finally:
                if self.serialize_all_writes:
                    self.global_lock.release()

        return release

    @asynccontextmanager
    async def read(self, category: LockCategory) -> AsyncIterator[None]:
        release = await self.acquire_read(category)
        try:
            yield
        finally:
            await release()

    @asynccontextmanager
    async def write(self, category: LockCategory) -> AsyncIterator[None]:
        release = await self.acquire_write(category)
        try:
            yield
        finally:
            await release()
