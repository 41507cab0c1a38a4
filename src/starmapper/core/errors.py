"""
Mapper Errors

Every failure raised while mapping propagates unrecovered to the top-level
``map`` call; none of them leaves a partially assigned entity behind.
"""

from typing import Any, Dict, List, Optional

from ..auth import AuthorizationError


class MapperError(Exception):
    """Base exception for mapping operations"""
    pass


class UnknownEntityError(MapperError, LookupError):
    """Raised by a store asked about a type it does not know"""

    def __init__(self, type_name: str):
        super().__init__(f"Unknown entity type: {type_name}")
        self.type_name = type_name


class IdentifierConflictError(MapperError, ValueError):
    """Raised when the explicit identifier and the one in the data disagree"""

    def __init__(self, type_name: str, id: Any, data_id: Any):
        super().__init__(
            f"Wrong identifier for {type_name}: got '{id}' but data carries '{data_id}'"
        )
        self.type_name = type_name
        self.id = id
        self.data_id = data_id


class EntityNotFoundError(MapperError, LookupError):
    """Raised when an explicit identifier does not resolve to an entity"""

    def __init__(self, type_name: str, id: Any):
        super().__init__(f"Entity {type_name} with identifier '{id}' not found")
        self.type_name = type_name
        self.id = id


class PermissionDeniedError(MapperError, AuthorizationError):
    """Raised when a RESTRICT gate rejects a field"""

    def __init__(self, entity: Any, field: str, ability: str):
        super().__init__(
            f"Permission '{ability}' denied for field '{field}' of {type(entity).__name__}"
        )
        self.entity = entity
        self.field = field
        self.ability = ability


class ValidationFailedError(MapperError):
    """Raised when the rule checker reports failures for an entity"""

    def __init__(self, errors: Dict[str, List[str]], type_name: Optional[str] = None):
        super().__init__("The given data failed to pass validation.")
        self.errors = errors
        self.type_name = type_name

    def messages(self) -> List[str]:
        return [f"{key}: {message}" for key, items in self.errors.items() for message in items]


class InvalidPayloadError(MapperError, TypeError):
    """Raised when input data does not have the shape a field requires"""
    pass


class MappingDepthError(MapperError, RecursionError):
    """Raised when relation nesting exceeds the configured depth"""

    def __init__(self, max_depth: int):
        super().__init__(f"Relation nesting exceeds the maximum depth of {max_depth}")
        self.max_depth = max_depth


__all__ = [
    "MapperError", "UnknownEntityError", "IdentifierConflictError",
    "EntityNotFoundError", "PermissionDeniedError", "ValidationFailedError",
    "InvalidPayloadError", "MappingDepthError",
]
