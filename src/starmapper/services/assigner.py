"""
Assigner Service - Field Assignment

Applies the final field plan to an entity through an explicit setter
registry. Setters are registered by hand or built once per entity class
from its ``set_<field>`` methods; nothing is probed per assignment.
"""

import logging
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Type

from ..core.metadata import EntityDescriptor
from ..persistence.base import MetadataStore

logger = logging.getLogger(__name__)

Setter = Callable[[Any, Any], None]


def _method_setter(method_name: str) -> Setter:
    def setter(entity: Any, value: Any) -> None:
        getattr(entity, method_name)(value)
    setter.__name__ = method_name
    return setter


def _attribute_setter(field: str) -> Setter:
    def setter(entity: Any, value: Any) -> None:
        setattr(entity, field, value)
    setter.__name__ = f"setattr_{field}"
    return setter


class SetterRegistry:
    """
    Per-type registry of ``field -> setter(entity, value)``.

    Explicit registrations win over setters built from the class.
    """

    def __init__(self, prefix: str = "set_", attribute_setters: bool = False):
        self.prefix = prefix
        self.attribute_setters = attribute_setters
        self._explicit: Dict[str, Dict[str, Setter]] = {}
        self._built: Dict[str, Tuple[Type, Dict[str, Setter]]] = {}

    def setter_name(self, field: str) -> str:
        return f"{self.prefix}{field}"

    def register(self, type_name: str, field: str, setter: Setter) -> None:
        """Register a setter for one field of a type."""
        self._explicit.setdefault(type_name, {})[field] = setter

    def register_class(self, type_name: str, cls: Type, fields: Iterable[str]) -> Dict[str, Setter]:
        """
        Build the setters of ``cls`` for ``fields``.

        A ``<prefix><field>`` method becomes the setter; otherwise plain
        attribute assignment is used when ``attribute_setters`` is on.
        Fields with neither get no setter.
        """
        setters: Dict[str, Setter] = {}
        for field in fields:
            method_name = self.setter_name(field)
            if callable(getattr(cls, method_name, None)):
                setters[field] = _method_setter(method_name)
            elif self.attribute_setters:
                setters[field] = _attribute_setter(field)
        self._built[type_name] = (cls, setters)
        return setters

    def is_built(self, type_name: str, cls: Optional[Type] = None) -> bool:
        """Whether setters exist for the type, built from ``cls`` when given."""
        built = self._built.get(type_name)
        return built is not None and (cls is None or built[0] is cls)

    def get(self, type_name: str, field: str) -> Optional[Setter]:
        explicit = self._explicit.get(type_name, {})
        if field in explicit:
            return explicit[field]
        built = self._built.get(type_name)
        return built[1].get(field) if built is not None else None


class Assigner:
    """Fills entities from an ordered ``field -> value`` plan."""

    def __init__(self, store: MetadataStore, registry: Optional[SetterRegistry] = None):
        self.store = store
        self.registry = registry or SetterRegistry()

    def setter_for(self, descriptor: EntityDescriptor, field: str) -> Optional[Setter]:
        """Setter of ``field``, or None when the field cannot be assigned."""
        if field == descriptor.identifier:
            return None
        cls = self.store.get_class(descriptor.name)
        if not self.registry.is_built(descriptor.name, cls):
            self.registry.register_class(descriptor.name, cls, descriptor.declared())
        return self.registry.get(descriptor.name, field)

    def fill(self, entity: Any, descriptor: EntityDescriptor,
             assignments: Mapping[str, Any]) -> Any:
        """
        Assign every planned value, in plan order.

        Returns:
            The same entity instance
        """
        for field, value in assignments.items():
            setter = self.setter_for(descriptor, field)
            if setter is None:
                logger.debug(f"No setter for {descriptor.name}.{field}, skipped")
                continue
            setter(entity, value)
        return entity


__all__ = ["Assigner", "SetterRegistry", "Setter"]
