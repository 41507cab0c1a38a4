"""
Raw input values.

Decoded JSON is modelled as a tagged union so relation payloads can be
branched on exhaustively.
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Sequence, Union

JSONValue = Union[None, bool, int, float, str, List["JSONValue"], Dict[str, "JSONValue"]]
JSONObject = Dict[str, JSONValue]


class ValueKind(Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


def kind_of(value: Any) -> ValueKind:
    """Classify a raw value. Raises TypeError for non-JSON shapes."""
    if value is None:
        return ValueKind.NULL
    # bool before int, bool is an int subclass
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return ValueKind.SEQUENCE
    raise TypeError(f"Unsupported input value of type {type(value).__name__}")


def is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


__all__ = ["JSONValue", "JSONObject", "ValueKind", "kind_of", "is_mapping", "is_sequence"]
