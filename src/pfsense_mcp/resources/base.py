"""
pfSense MCP Server - Resource Accessor Template

Every managed configuration resource is read and written the same way: take the
category lock, snapshot the current list, locate the record by its natural key
to learn its position index, submit the form, then snapshot again and locate
the record once more. The position index is only valid for the instant it was
read, so it is never cached between operations.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Generic, Iterable, List, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from ..core.decoding import as_positional_list
from ..core.exceptions import (
    ClientValidationError,
    CreateOperationFailed,
    DeleteOperationFailed,
    GetOperationFailed,
    ParseError,
    PfSenseError,
    ResourceNotFoundError,
    UpdateOperationFailed,
)
from ..core.locks import LockCategory

if TYPE_CHECKING:
    from ..core.client import PfSenseClient

logger = logging.getLogger("pfsense-mcp")

T = TypeVar("T", bound=BaseModel)


@dataclass
class Entry(Generic[T]):
    """A record together with its position index in the remote list."""

    control_id: Optional[int]
    record: T


def build_record(model: Type[T], data: Union[T, Mapping[str, Any]]) -> T:
    """Validate caller-supplied data into a record before any network call.

    Raises:
        ClientValidationError: The data cannot be encoded for the console
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        problems = [f"{'.'.join(str(p) for p in err['loc']) or 'value'}: {err['msg']}" for err in e.errors()]
        raise ClientValidationError(
            f"invalid {model.__name__}, {'; '.join(problems)}",
            context={"model": model.__name__, "errors": problems},
        ) from e


def decode_records(model: Type[BaseModel], items: Iterable[Any], resource: str) -> List[Any]:
    """Decode raw script-console items with the given response model.

    Raises:
        ParseError: An item does not have the expected shape
    """
    decoded = []
    for index, item in enumerate(items):
        try:
            decoded.append(model.model_validate(item))
        except ValidationError as e:
            raise ParseError(
                f"unable to parse {resource} response at index {index}, {e.errors()[0]['msg']}",
                context={"resource": resource, "index": index},
            ) from e
    return decoded


def decode_positional_records(model: Type[BaseModel], raw: Any, resource: str) -> List[Tuple[int, Any]]:
    """Decode a list the console edits by position, keeping each record's control ID.

    Raises:
        ParseError: The list or one of its items does not have the expected shape
    """
    positions = as_positional_list(raw)
    decoded = decode_records(model, (item for _, item in positions), resource)
    return [(control_id, response) for (control_id, _), response in zip(positions, decoded)]


class ResourceAccessor(Generic[T]):
    """Get/GetAll/Create/Update/Delete for one resource category.

    Subclasses describe the resource (``model``, ``category``, names) and
    implement ``fetch``, ``submit`` and ``remove``. The template takes care of
    locking, locating by natural key, verification and error wrapping.
    """

    model: Type[T]
    category: LockCategory
    resource_name: str = "resource"
    plural_name: str = "resources"
    key_field: str = "name"
    # Fields the console computes itself, ignored when verifying a write
    computed_fields: frozenset = frozenset()

    def __init__(self, client: "PfSenseClient"):
        self.client = client

    # ========== HOOKS ==========

    async def fetch(self, **scope: Any) -> List[Entry[T]]:
        """Snapshot the current list of records, in remote order."""
        raise NotImplementedError

    async def submit(self, record: T, control_id: Optional[int]) -> None:
        """Submit the edit form, ``control_id`` is ``None`` when creating."""
        raise NotImplementedError

    async def remove(self, entry: Entry[T], **scope: Any) -> None:
        """Submit the delete action for ``entry``."""
        raise NotImplementedError

    def key_of(self, record: T) -> str:
        return self.normalize_key(getattr(record, self.key_field))

    def normalize_key(self, key: Any) -> str:
        return str(key)

    def scope_of(self, record: T) -> Dict[str, Any]:
        """Scope arguments (e.g. interface) the record's list lives under."""
        return {}

    # ========== LOOKUP ==========

    def find(self, entries: List[Entry[T]], key: Any) -> Entry[T]:
        wanted = self.normalize_key(key)
        for entry in entries:
            if self.key_of(entry.record) == wanted:
                return entry
        raise ResourceNotFoundError(
            f"{self.resource_name} not found with {self.key_field} '{key}'",
            context={"resource": self.resource_name, "key": str(key)},
        )

    def _verify(self, requested: T, located: T) -> None:
        exclude = set(self.computed_fields)
        wanted = requested.model_dump(mode="json", exclude=exclude)
        found = located.model_dump(mode="json", exclude=exclude)
        mismatched = sorted(name for name in wanted if wanted.get(name) != found.get(name))
        if mismatched:
            logger.warning(
                f"{self.resource_name} '{self.key_of(requested)}' differs from the submitted values "
                f"after writing, fields: {', '.join(mismatched)}"
            )

    # ========== OPERATIONS ==========

    async def get_all(self, **scope: Any) -> List[T]:
        try:
            async with self.client.coordinator.read(self.category):
                entries = await self.fetch(**scope)
        except PfSenseError as e:
            raise GetOperationFailed(self.plural_name, cause=e, category=self.category.value) from e
        return [entry.record for entry in entries]

    async def get(self, key: Any, **scope: Any) -> T:
        try:
            async with self.client.coordinator.read(self.category):
                entries = await self.fetch(**scope)
            return self.find(entries, key).record
        except PfSenseError as e:
            raise GetOperationFailed(
                f"{self.resource_name} '{key}'", cause=e, category=self.category.value
            ) from e

    async def create(self, record: Union[T, Mapping[str, Any]]) -> T:
        try:
            requested = build_record(self.model, record)
            key = self.key_of(requested)
            scope = self.scope_of(requested)

            async with self.client.coordinator.write(self.category):
                await self.submit(requested, None)
                located = self.find(await self.fetch(**scope), key)
        except PfSenseError as e:
            raise CreateOperationFailed(self.resource_name, cause=e, category=self.category.value) from e

        logger.info(f"Created {self.resource_name} '{key}'")
        self._verify(requested, located.record)
        return located.record

    async def update(self, record: Union[T, Mapping[str, Any]]) -> T:
        try:
            requested = build_record(self.model, record)
            key = self.key_of(requested)
            scope = self.scope_of(requested)

            async with self.client.coordinator.write(self.category):
                current = self.find(await self.fetch(**scope), key)
                await self.submit(requested, current.control_id)
                located = self.find(await self.fetch(**scope), key)
        except PfSenseError as e:
            raise UpdateOperationFailed(self.resource_name, cause=e, category=self.category.value) from e

        logger.info(f"Updated {self.resource_name} '{key}'")
        self._verify(requested, located.record)
        return located.record

    async def delete(self, key: Any, **scope: Any) -> None:
        try:
            async with self.client.coordinator.write(self.category):
                current = self.find(await self.fetch(**scope), key)
                await self.remove(current, **scope)
                remaining = await self.fetch(**scope)
        except PfSenseError as e:
            raise DeleteOperationFailed(self.resource_name, cause=e, category=self.category.value) from e

        try:
            self.find(remaining, key)
        except ResourceNotFoundError:
            logger.info(f"Deleted {self.resource_name} '{key}'")
            return

        raise DeleteOperationFailed(
            f"{self.resource_name} '{key}'", category=self.category.value, detail="still exists"
        )
