"""
SQL Metadata Store - SQLModel Integration

🗃️ Session-backed metadata store:
Describes SQLModel table classes through SQLAlchemy mapper inspection and
resolves entities through the session's identity map. The store never
flushes or commits; transaction handling stays with the caller.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Type

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlmodel import Session, SQLModel

from ..core.errors import UnknownEntityError
from ..core.metadata import (
    Cardinality, EntityDescriptor, FieldRule, GateRule, RelationInfo, rules_from_extra,
)
from .base import MetadataStore

logger = logging.getLogger(__name__)


class SQLModelMetadataStore(MetadataStore):
    """
    Metadata store over a SQLModel session.

    Column attributes are scalar fields, relationships are relations
    (``uselist`` relationships are to-many) and the first primary key
    column is the identifier. An entity counts as existing when the session
    holds it.
    """

    def __init__(self, session: Session, models: Iterable[Type[SQLModel]] = ()):
        self.session = session
        self._classes: Dict[str, Type[SQLModel]] = {}
        self._names: Dict[Type, str] = {}
        self._explicit_field_rules: Dict[str, Dict[str, FieldRule]] = {}
        self._explicit_gate_rules: Dict[str, Dict[str, GateRule]] = {}
        self._descriptors: Dict[str, EntityDescriptor] = {}
        for model in models:
            self.register(model)

    def register(self, cls: Type[SQLModel], name: Optional[str] = None,
                 field_rules: Optional[Mapping[str, Any]] = None,
                 gate_rules: Optional[Mapping[str, Any]] = None) -> str:
        """Register a mapped SQLModel table class."""
        try:
            sa_inspect(cls)
        except NoInspectionAvailable:
            raise TypeError(f"{cls.__name__} is not a mapped SQLModel table class") from None

        type_name = name or cls.__name__
        self._classes[type_name] = cls
        self._names[cls] = type_name
        self._explicit_field_rules[type_name] = {
            field: FieldRule.coerce(rule)
            for field, rule in {**getattr(cls, "__validation__", {}), **(field_rules or {})}.items()
        }
        self._explicit_gate_rules[type_name] = {
            field: GateRule.coerce(rule)
            for field, rule in {**getattr(cls, "__keepers__", {}), **(gate_rules or {})}.items()
        }
        self._descriptors.pop(type_name, None)
        return type_name

    def get_class(self, type_name: str) -> Type[SQLModel]:
        try:
            return self._classes[type_name]
        except KeyError:
            raise UnknownEntityError(type_name) from None

    def type_name_of(self, cls: Type) -> str:
        return self._names.get(cls, cls.__name__)

    def get_descriptor(self, type_name: str) -> EntityDescriptor:
        descriptor = self._descriptors.get(type_name)
        if descriptor is None:
            descriptor = self._describe(type_name)
            self._descriptors[type_name] = descriptor
        return descriptor

    def _describe(self, type_name: str) -> EntityDescriptor:
        mapper = sa_inspect(self.get_class(type_name))
        identifier = mapper.get_property_by_column(mapper.primary_key[0]).key
        relations = {
            rel.key: RelationInfo(
                Cardinality.TO_MANY if rel.uselist else Cardinality.TO_ONE,
                self.type_name_of(rel.mapper.class_),
            )
            for rel in mapper.relationships
        }
        return EntityDescriptor(
            name=type_name,
            identifier=identifier,
            fields=tuple(attr.key for attr in mapper.column_attrs),
            relations=relations,
        )

    def _declared_rules(self, type_name: str, field_name: str):
        model_field = self.get_class(type_name).model_fields.get(field_name)
        if model_field is None:
            return None, None
        return rules_from_extra(model_field.json_schema_extra)

    def get_field_rule(self, type_name: str, field_name: str) -> Optional[FieldRule]:
        explicit = self._explicit_field_rules.get(type_name, {})
        if field_name in explicit:
            return explicit[field_name]
        return self._declared_rules(type_name, field_name)[0]

    def get_gate_rule(self, type_name: str, field_name: str) -> Optional[GateRule]:
        explicit = self._explicit_gate_rules.get(type_name, {})
        if field_name in explicit:
            return explicit[field_name]
        return self._declared_rules(type_name, field_name)[1]

    def find(self, type_name: str, id: Any) -> Optional[Any]:
        return self.session.get(self.get_class(type_name), id)

    def is_existing(self, entity: Any) -> bool:
        return entity in self.session

    def create(self, type_name: str) -> SQLModel:
        return self.get_class(type_name)()


__all__ = ["SQLModelMetadataStore"]
