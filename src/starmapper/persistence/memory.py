"""
StarMapper Persistence Layer - Memory Store

In-memory metadata store over pydantic models, for development and testing.
Keeps an identity map of saved entities; data is lost when the process exits.
"""

import logging
import threading
import types
from collections import defaultdict
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Type, Union, get_args, get_origin

from pydantic import BaseModel

from ..core.errors import UnknownEntityError
from ..core.metadata import (
    Cardinality, EntityDescriptor, FieldRule, GateRule, RelationInfo, rules_from_extra,
)
from .base import MetadataStore

logger = logging.getLogger(__name__)

_COLLECTION_ORIGINS = (list, tuple, set, frozenset)
# ``X | Y`` unions, absent before Python 3.10
_UNION_TYPE = getattr(types, "UnionType", None)


class _Registration:
    """What ``register`` was told about one model class"""

    def __init__(self, cls: Type[BaseModel], identifier: str,
                 relations: Mapping[str, Any],
                 field_rules: Mapping[str, Any],
                 gate_rules: Mapping[str, Any]):
        self.cls = cls
        self.identifier = identifier
        self.relations = dict(relations)
        self.field_rules = {name: FieldRule.coerce(rule) for name, rule in field_rules.items()}
        self.gate_rules = {name: GateRule.coerce(rule) for name, rule in gate_rules.items()}


class MemoryMetadataStore(MetadataStore):
    """
    Metadata store for pydantic models kept in memory.

    Descriptors are derived from ``model_fields`` the first time a type is
    described: fields annotated with another registered model (bare,
    ``Optional[...]`` or a list of them) become relations, everything else is
    a scalar field. Rules come from ``Field(json_schema_extra=...)`` built with
    :func:`starmapper.core.metadata.validation` / ``keeper``, from the
    ``__validation__`` / ``__keepers__`` class mappings, or from the explicit
    arguments of :meth:`register`.
    """

    def __init__(self, models: Iterable[Type[BaseModel]] = ()):
        self._registrations: Dict[str, _Registration] = {}
        self._names: Dict[Type, str] = {}
        self._descriptors: Dict[str, EntityDescriptor] = {}
        self._field_rules: Dict[str, Dict[str, FieldRule]] = {}
        self._gate_rules: Dict[str, Dict[str, GateRule]] = {}
        self._data: Dict[str, Dict[Any, Any]] = defaultdict(dict)
        self._lock = threading.RLock()
        for model in models:
            self.register(model)

    def register(self, cls: Type[BaseModel], name: Optional[str] = None,
                 identifier: str = "id",
                 relations: Optional[Mapping[str, Any]] = None,
                 field_rules: Optional[Mapping[str, Any]] = None,
                 gate_rules: Optional[Mapping[str, Any]] = None) -> str:
        """
        Register a model class.

        Args:
            cls: pydantic model class
            name: Type name (defaults to the class name)
            identifier: Identifier field name
            relations: Explicit relations, ``{field: RelationInfo | (cardinality, target)}``
            field_rules: Explicit validation rules, ``{field: "rule" | {...}}``
            gate_rules: Explicit gates, ``{field: "ability" | {...}}``

        Returns:
            The registered type name
        """
        if not (isinstance(cls, type) and issubclass(cls, BaseModel)):
            raise TypeError(f"{cls!r} is not a pydantic model class")

        type_name = name or cls.__name__
        with self._lock:
            self._registrations[type_name] = _Registration(
                cls, identifier, relations or {},
                {**getattr(cls, "__validation__", {}), **(field_rules or {})},
                {**getattr(cls, "__keepers__", {}), **(gate_rules or {})},
            )
            self._names[cls] = type_name
            # relations of other types may now resolve to this one
            self._descriptors.clear()
            self._field_rules.clear()
            self._gate_rules.clear()

        logger.debug(f"Registered model {cls.__name__} as '{type_name}'")
        return type_name

    def _registration(self, type_name: str) -> _Registration:
        try:
            return self._registrations[type_name]
        except KeyError:
            raise UnknownEntityError(type_name) from None

    def type_name_of(self, cls: Type) -> str:
        return self._names.get(cls, cls.__name__)

    def get_class(self, type_name: str) -> Type[BaseModel]:
        return self._registration(type_name).cls

    def get_descriptor(self, type_name: str) -> EntityDescriptor:
        with self._lock:
            descriptor = self._descriptors.get(type_name)
            if descriptor is None:
                descriptor = self._describe(type_name)
                self._descriptors[type_name] = descriptor
            return descriptor

    def _describe(self, type_name: str) -> EntityDescriptor:
        registration = self._registration(type_name)
        fields = []
        relations: Dict[str, RelationInfo] = {}
        field_rules: Dict[str, FieldRule] = {}
        gate_rules: Dict[str, GateRule] = {}

        for field_name, info in registration.cls.model_fields.items():
            explicit = registration.relations.get(field_name)
            relation = self._coerce_relation(explicit) if explicit is not None \
                else self._relation_from_annotation(info.annotation)
            if relation is not None:
                relations[field_name] = relation
            else:
                fields.append(field_name)

            field_rule, gate_rule = rules_from_extra(info.json_schema_extra)
            if field_rule is not None:
                field_rules[field_name] = field_rule
            if gate_rule is not None:
                gate_rules[field_name] = gate_rule

        field_rules.update(registration.field_rules)
        gate_rules.update(registration.gate_rules)
        self._field_rules[type_name] = field_rules
        self._gate_rules[type_name] = gate_rules

        return EntityDescriptor(
            name=type_name,
            identifier=registration.identifier,
            fields=tuple(fields),
            relations=relations,
        )

    def _coerce_relation(self, value: Any) -> RelationInfo:
        if isinstance(value, RelationInfo):
            return value
        cardinality, target = value
        if not isinstance(cardinality, Cardinality):
            cardinality = Cardinality(cardinality)
        if isinstance(target, type):
            target = self.type_name_of(target)
        return RelationInfo(cardinality, target)

    def _relation_from_annotation(self, annotation: Any) -> Optional[RelationInfo]:
        cardinality, target = _unwrap(annotation)
        if target is None or target not in self._names:
            return None
        return RelationInfo(cardinality, self._names[target])

    def get_field_rule(self, type_name: str, field_name: str) -> Optional[FieldRule]:
        self.get_descriptor(type_name)
        return self._field_rules[type_name].get(field_name)

    def get_gate_rule(self, type_name: str, field_name: str) -> Optional[GateRule]:
        self.get_descriptor(type_name)
        return self._gate_rules[type_name].get(field_name)

    def create(self, type_name: str) -> BaseModel:
        return self.get_class(type_name).model_construct()

    def find(self, type_name: str, id: Any) -> Optional[Any]:
        self._registration(type_name)
        with self._lock:
            return self._data[type_name].get(id)

    def is_existing(self, entity: Any) -> bool:
        type_name = self._names.get(type(entity))
        if type_name is None:
            return False
        id = getattr(entity, self._registrations[type_name].identifier, None)
        if id is None:
            return False
        with self._lock:
            return self._data[type_name].get(id) is entity

    def save(self, entity: Any) -> Any:
        """Track an entity in the identity map; it counts as existing afterwards."""
        type_name = self.type_name_of(type(entity))
        registration = self._registration(type_name)
        id = getattr(entity, registration.identifier, None)
        if id is None:
            raise ValueError(f"Cannot save {type_name} without an identifier")
        with self._lock:
            self._data[type_name][id] = entity
        return entity

    def delete(self, entity: Any) -> bool:
        """Remove an entity from the identity map."""
        type_name = self.type_name_of(type(entity))
        id = getattr(entity, self._registration(type_name).identifier, None)
        with self._lock:
            return self._data[type_name].pop(id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


def _unwrap(annotation: Any) -> Tuple[Cardinality, Optional[Type]]:
    """Reduce an annotation to (cardinality, class) for relation detection."""
    origin = get_origin(annotation)
    if origin is Union or (_UNION_TYPE is not None and origin is _UNION_TYPE):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) != 1:
            return Cardinality.TO_ONE, None
        return _unwrap(args[0])
    if origin in _COLLECTION_ORIGINS:
        args = get_args(annotation)
        if not args:
            return Cardinality.TO_MANY, None
        _, target = _unwrap(args[0])
        return Cardinality.TO_MANY, target
    if isinstance(annotation, type):
        return Cardinality.TO_ONE, annotation
    return Cardinality.TO_ONE, None


__all__ = ["MemoryMetadataStore"]
