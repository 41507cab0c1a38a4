"""
Entity Metadata - Descriptors and Field Rules

Read-only records describing mapped entities: which fields are scalars,
which are relations (and their cardinality), which field is the identifier,
and the per-field validation and gate rules attached to field declarations.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class Cardinality(Enum):
    """Relation cardinality"""
    TO_ONE = "to_one"
    TO_MANY = "to_many"


class OnFailure(Enum):
    """What a gate does when the permission check fails"""
    IGNORE = "ignore"
    RESTRICT = "restrict"


@dataclass(frozen=True)
class RelationInfo:
    """Cardinality and target type of a relation field"""
    cardinality: Cardinality
    target: str

    @property
    def is_to_many(self) -> bool:
        return self.cardinality is Cardinality.TO_MANY


@dataclass(frozen=True)
class EntityDescriptor:
    """
    Mapping metadata for one entity type.

    Attributes:
        name: Entity type name as known to the store
        identifier: Name of the identifier field
        fields: Scalar field names in declaration order
        relations: Relation field name -> RelationInfo, in declaration order
    """
    name: str
    identifier: str
    fields: Tuple[str, ...] = ()
    relations: Mapping[str, RelationInfo] = field(default_factory=dict)

    @property
    def relation_names(self) -> Tuple[str, ...]:
        return tuple(self.relations)

    def declared(self) -> Tuple[str, ...]:
        """All declared field names, scalars first."""
        return self.fields + self.relation_names

    def relation(self, name: str) -> RelationInfo:
        return self.relations[name]


@dataclass(frozen=True)
class FieldRule:
    """Validation rule template attached to a field.

    ``sub`` is appended to the field name to build the rule key, so one
    logical field can carry several independent rules (e.g. ``password``
    and ``password_confirmation``).
    """
    rule: str
    sub: str = ""

    def key_for(self, field_name: str) -> str:
        return field_name + (self.sub or "")

    @classmethod
    def coerce(cls, value: Any) -> Optional["FieldRule"]:
        """Build a FieldRule from a declaration value (str, dict or FieldRule)."""
        if value is None or isinstance(value, FieldRule):
            return value
        if isinstance(value, str):
            return cls(rule=value)
        if isinstance(value, Mapping):
            return cls(rule=value["rule"], sub=value.get("sub") or "")
        raise TypeError(f"Cannot build a FieldRule from {type(value).__name__}")


@dataclass(frozen=True)
class GateRule:
    """Permission gate attached to a field."""
    ability: str
    on_failure: OnFailure = OnFailure.IGNORE

    @classmethod
    def coerce(cls, value: Any) -> Optional["GateRule"]:
        """Build a GateRule from a declaration value (str, dict or GateRule)."""
        if value is None or isinstance(value, GateRule):
            return value
        if isinstance(value, str):
            return cls(ability=value)
        if isinstance(value, Mapping):
            strategy = value.get("on_failure", value.get("strategy", OnFailure.IGNORE))
            if not isinstance(strategy, OnFailure):
                strategy = OnFailure(str(strategy).lower())
            return cls(ability=value["ability"], on_failure=strategy)
        raise TypeError(f"Cannot build a GateRule from {type(value).__name__}")


def validation(rule: str, sub: str = "") -> Dict[str, Any]:
    """
    Field declaration helper for validation rules.

    Usage::

        class User(BaseModel):
            email: str = Field(json_schema_extra=validation("required|email"))
    """
    return {"validation": {"rule": rule, "sub": sub}}


def keeper(ability: str, on_failure: OnFailure = OnFailure.IGNORE) -> Dict[str, Any]:
    """Field declaration helper for permission gates."""
    return {"keeper": {"ability": ability, "on_failure": on_failure.value}}


def rules_from_extra(extra: Any) -> Tuple[Optional[FieldRule], Optional[GateRule]]:
    """Read FieldRule/GateRule from a pydantic ``json_schema_extra`` value."""
    if not isinstance(extra, Mapping):
        return None, None
    return FieldRule.coerce(extra.get("validation")), GateRule.coerce(extra.get("keeper"))


__all__ = [
    "Cardinality", "OnFailure", "RelationInfo", "EntityDescriptor",
    "FieldRule", "GateRule", "validation", "keeper", "rules_from_extra",
]
