"""
StarMapper Core Module

Entity metadata, raw input values, mapper errors and the recursive mapper.
"""

from .errors import (
    MapperError, UnknownEntityError, IdentifierConflictError, EntityNotFoundError,
    PermissionDeniedError, ValidationFailedError, InvalidPayloadError, MappingDepthError,
)
from .metadata import (
    Cardinality, OnFailure, RelationInfo, EntityDescriptor, FieldRule, GateRule,
    validation, keeper,
)
from .values import JSONValue, JSONObject, ValueKind, kind_of
from .mapper import Mapper

__all__ = [
    "Mapper",
    "MapperError",
    "UnknownEntityError",
    "IdentifierConflictError",
    "EntityNotFoundError",
    "PermissionDeniedError",
    "ValidationFailedError",
    "InvalidPayloadError",
    "MappingDepthError",
    "Cardinality",
    "OnFailure",
    "RelationInfo",
    "EntityDescriptor",
    "FieldRule",
    "GateRule",
    "validation",
    "keeper",
    "JSONValue",
    "JSONObject",
    "ValueKind",
    "kind_of",
]
