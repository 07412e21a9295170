"""
pfSense MCP Server - Wire Decoding

The script console hands back configuration exactly as it is stored, which uses
a few encodings of its own: durations as bare integer seconds, lists joined
into one string, and booleans expressed by the mere presence of a key. These
annotated types let each resource record declare its coercions next to its
fields.
"""

from datetime import timedelta
from typing import Annotated, Any, Callable, List, Optional, Tuple

from pydantic import BeforeValidator, PlainSerializer

from .exceptions import ParseError


def _to_seconds(value: Any) -> Optional[timedelta]:
    if value is None or value == "":
        return None
    if isinstance(value, timedelta):
        return value
    if isinstance(value, str):
        value = value.strip()
        if value.endswith("s"):
            value = value[:-1]
    seconds = int(value)
    if seconds < 0:
        raise ValueError("duration must not be negative")
    return timedelta(seconds=seconds)


def _from_seconds(value: Optional[timedelta]) -> Optional[int]:
    if value is None:
        return None
    return int(value.total_seconds())


Seconds = Annotated[
    Optional[timedelta],
    BeforeValidator(_to_seconds),
    PlainSerializer(_from_seconds, return_type=Optional[int]),
]


def delimited(sep: str) -> Callable[[Any], List[str]]:
    """Build a validator that splits a joined string on ``sep``.

    Lists pass through untouched; empty strings and ``None`` become an empty list.
    """

    def split(value: Any) -> List[str]:
        if value is None or value == "":
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(sep) if part.strip()]
        return list(value)

    return split


def _presence(value: Any) -> bool:
    # Stored as an empty string or "yes" when set, absent otherwise
    if isinstance(value, bool):
        return value
    return value is not None


PresenceFlag = Annotated[bool, BeforeValidator(_presence)]


def _address_list(value: Any) -> List[str]:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value if item not in (None, "")]


AddressList = Annotated[List[str], BeforeValidator(_address_list)]


def as_list(value: Any) -> List[Any]:
    """Normalize a configuration subtree that should be an ordered list.

    PHP encodes an absent list as ``null`` or ``""`` and a list with gaps in its
    keys as an object; both are folded into a plain list in key order. Lists the
    console edits by position go through ``as_positional_list`` instead.
    """
    if value is None or value == "":
        return []
    if isinstance(value, dict):
        return [value[key] for key in sorted(value, key=_key_order)]
    if isinstance(value, list):
        return value
    raise ParseError(f"unable to parse configuration list, got {type(value).__name__}")


def _key_order(key: str):
    return (0, int(key)) if str(key).isdigit() else (1, str(key))


def as_positional_list(value: Any) -> List[Tuple[int, Any]]:
    """Normalize a configuration list whose keys are the edit pages' ``id``.

    Returns ``(position, item)`` pairs. When PHP sends an object because the
    array has gaps in its keys, the keys are kept rather than renumbered, as
    the console addresses each record by that key.
    """
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return list(enumerate(value))
    if isinstance(value, dict):
        keys = [str(key) for key in value]
        if not all(key.isdigit() for key in keys):
            raise ParseError(
                "unable to parse configuration list, keys are not positions",
                context={"keys": keys},
            )
        return sorted(((int(key), item) for key, item in zip(keys, value.values())), key=lambda pair: pair[0])
    raise ParseError(f"unable to parse configuration list, got {type(value).__name__}")
