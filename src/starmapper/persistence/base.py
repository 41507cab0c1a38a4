"""
StarMapper Persistence Layer - Base Classes

This module provides the abstract metadata store the mapper depends on:
entity lookup by type name and identifier, field/relation introspection
and the per-field rules attached to entity declarations.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Type

from ..core.metadata import EntityDescriptor, FieldRule, GateRule


class MetadataStore(ABC):
    """
    Abstract base class for metadata stores.

    Implementations own the identity map and the existence tracking of
    entities; the mapper only reads from them.
    """

    @abstractmethod
    def get_descriptor(self, type_name: str) -> EntityDescriptor:
        """
        Get the mapping descriptor of an entity type.

        Args:
            type_name: Entity type name

        Returns:
            EntityDescriptor for the type

        Raises:
            UnknownEntityError: If the type is not known to the store
        """
        pass

    @abstractmethod
    def get_class(self, type_name: str) -> Type:
        """Get the Python class registered under ``type_name``."""
        pass

    @abstractmethod
    def find(self, type_name: str, id: Any) -> Optional[Any]:
        """
        Find a managed entity by identifier.

        Returns:
            Entity instance if found, None otherwise
        """
        pass

    @abstractmethod
    def is_existing(self, entity: Any) -> bool:
        """Check whether the store tracks the entity as persisted."""
        pass

    @abstractmethod
    def create(self, type_name: str) -> Any:
        """Instantiate a fresh, untracked entity of ``type_name``."""
        pass

    @abstractmethod
    def get_field_rule(self, type_name: str, field_name: str) -> Optional[FieldRule]:
        pass

    @abstractmethod
    def get_gate_rule(self, type_name: str, field_name: str) -> Optional[GateRule]:
        pass

    def type_name_of(self, cls: Type) -> str:
        """Type name used for a class; the class name by default."""
        return cls.__name__
