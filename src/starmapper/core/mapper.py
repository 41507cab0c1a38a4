"""
Mapper - Recursive Entity Mapping

🎯 From payload to entities:
Maps decoded JSON onto entities described by a metadata store. For every
entity in the payload tree the mapper

1. reconciles the explicit identifier with the one carried by the data,
2. resolves the managed entity (or creates one),
3. filters fields through their permission gates,
4. splits scalar fields from relation fields (unknown keys are dropped),
5. validates scalar and relation fields against their rule templates,
6. maps every relation recursively, depth first,
7. assigns the collected values through the setter registry.

Any failure unwinds the whole call before the failing entity or any of its
ancestors is assigned.

Usage::

    store = MemoryMetadataStore([User, Post])
    mapper = Mapper(store, permission_check=can, rule_checker=checker)
    user = mapper.map("User", {"name": "Ada", "posts": [{"title": "Hi"}]})
"""

import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from ..config import ApplicationConfig, MapperConfig, get_config
from ..persistence.base import MetadataStore
from ..services.assigner import Assigner, SetterRegistry
from ..services.gatekeeper import Gatekeeper, PermissionCheck
from ..services.resolver import EntityResolver, Factory
from ..services.validation_service import (
    CallableRuleChecker, Failures, RuleChecker, RuleValidator, raise_for_failures,
)
from .errors import IdentifierConflictError, InvalidPayloadError, MappingDepthError
from .metadata import EntityDescriptor, RelationInfo
from .values import JSONObject, ValueKind, is_mapping, is_sequence, kind_of

logger = logging.getLogger(__name__)


class Mapper:
    """
    Recursive object mapper.

    Args:
        store: Metadata store resolving descriptors, rules and entities
        factory: Creates fresh entities by type name (defaults to ``store.create``)
        permission_check: ``(ability, entity) -> bool``; no gating when omitted
        rule_checker: RuleChecker or plain callable; no validation when omitted
        config: Mapper behaviour
        setters: Setter registry to share between mappers
    """

    def __init__(self, store: MetadataStore,
                 factory: Optional[Factory] = None,
                 permission_check: Optional[PermissionCheck] = None,
                 rule_checker: Union[RuleChecker, Callable, None] = None,
                 config: Optional[MapperConfig] = None,
                 setters: Optional[SetterRegistry] = None):
        self.store = store
        self.config = config or MapperConfig()

        self.resolver = EntityResolver(store, factory)
        self.gatekeeper = Gatekeeper(store, permission_check) if permission_check else None

        self.validator: Optional[RuleValidator] = None
        if rule_checker is not None:
            if not isinstance(rule_checker, RuleChecker):
                rule_checker = CallableRuleChecker(rule_checker)
            self.validator = RuleValidator(
                store, rule_checker,
                null_identifier=self.config.null_identifier,
                relax_required=self.config.relax_required,
            )

        self.assigner = Assigner(store, setters or SetterRegistry(
            prefix=self.config.setter_prefix,
            attribute_setters=self.config.attribute_setters,
        ))

    @classmethod
    def from_config(cls, store: MetadataStore,
                    config: Optional[ApplicationConfig] = None, **kwargs) -> 'Mapper':
        """Build a mapper from the application configuration."""
        config = config or get_config()
        return cls(store, config=config.mapper, **kwargs)

    @property
    def setters(self) -> SetterRegistry:
        return self.assigner.registry

    def setter_name(self, field: str) -> str:
        return self.setters.setter_name(field)

    def map_json(self, type_name: str, text: Union[str, bytes]) -> Any:
        """
        Map a JSON document onto an entity of ``type_name``.

        Raises:
            InvalidPayloadError: If the document is not a JSON object
        """
        data = json.loads(text)
        if not isinstance(data, dict):
            raise InvalidPayloadError(
                f"Expected a JSON object for {type_name}, got {kind_of(data).value}"
            )
        return self.map(type_name, data)

    def map(self, type_name: str, data: Mapping[str, Any], id: Any = None) -> Any:
        """
        Map ``data`` onto an entity of ``type_name``.

        Args:
            type_name: Entity type name
            data: Field name -> raw value
            id: Identifier of an existing entity to update

        Returns:
            The resolved or created entity, filled with ``data``

        Raises:
            IdentifierConflictError: ``id`` and the data's identifier differ
            EntityNotFoundError: An identifier does not resolve
            PermissionDeniedError: A restricting gate rejected a field
            ValidationFailedError: Rule checking failed
            InvalidPayloadError: A relation payload or identifier has the wrong shape
            MappingDepthError: Relation nesting is too deep
        """
        return self._map(type_name, data, id, depth=0)

    def _map(self, type_name: str, data: Any, id: Any, depth: int) -> Any:
        max_depth = self.config.max_depth
        if max_depth is not None and depth > max_depth:
            raise MappingDepthError(max_depth)
        if not isinstance(data, Mapping):
            raise InvalidPayloadError(f"Expected an object for {type_name}, got {type(data).__name__}")

        descriptor = self.store.get_descriptor(type_name)
        identifier = descriptor.identifier
        data_id = data.get(identifier)
        if is_mapping(data_id) or is_sequence(data_id):
            raise InvalidPayloadError(
                f"{type_name}.{identifier} must be a scalar, got {type(data_id).__name__}"
            )

        if id is not None and data_id is not None and not _same_identifier(id, data_id):
            logger.warning(f"Identifier conflict for {type_name}: {id!r} != {data_id!r}")
            raise IdentifierConflictError(type_name, id, data_id)

        id = id if id is not None else data_id
        data = dict(data)
        if id is not None:
            data[identifier] = id

        return self._build_entity_map(descriptor, data, id, depth)

    def _build_entity_map(self, descriptor: EntityDescriptor, data: JSONObject,
                          id: Any, depth: int) -> Any:
        entity = self.resolver.resolve(descriptor.name, id)

        candidates: List[str] = list(data)
        if self.gatekeeper is not None:
            candidates = self.gatekeeper.filter_fields(entity, descriptor, candidates)
        dropped = set(data) - set(candidates)

        scalar_names = set(descriptor.fields)
        relation_names = set(descriptor.relations)
        scalar_data = {name: data[name] for name in candidates if name in scalar_names}
        relation_data = {name: data[name] for name in candidates if name in relation_names}

        unknown = [name for name in candidates if name not in scalar_names and name not in relation_names]
        if unknown:
            logger.debug(f"Ignoring unknown fields of {descriptor.name}: {unknown}")

        if self.validator is not None:
            failures: Failures = {}
            _merge(failures, self.validator.collect(
                descriptor, _without(descriptor.fields, dropped), scalar_data, entity, id,
            ))
            _merge(failures, self.validator.collect(
                descriptor, _without(descriptor.relation_names, dropped), relation_data, entity, id,
            ))
            raise_for_failures(failures, descriptor.name)

        relation_values: Dict[str, Any] = {}
        for name, payload in relation_data.items():
            if self.assigner.setter_for(descriptor, name) is None:
                logger.debug(f"No setter for relation {descriptor.name}.{name}, not mapped")
                continue
            relation_values[name] = self._map_relation(
                descriptor.name, name, descriptor.relation(name), payload, depth + 1,
            )

        return self.assigner.fill(entity, descriptor, {**scalar_data, **relation_values})

    def _map_relation(self, owner: str, name: str, relation: RelationInfo,
                      payload: Any, depth: int) -> Any:
        try:
            kind = kind_of(payload)
        except TypeError as e:
            raise InvalidPayloadError(f"{owner}.{name}: {e}") from e

        if kind is ValueKind.NULL:
            return [] if relation.is_to_many else None

        if relation.is_to_many:
            if kind is not ValueKind.SEQUENCE:
                raise InvalidPayloadError(
                    f"{owner}.{name} expects a list of {relation.target} objects, got {kind.value}"
                )
            logger.debug(f"Mapping {len(payload)} {relation.target} for {owner}.{name}")
            return [self._map(relation.target, item, None, depth) for item in payload]

        if kind is not ValueKind.MAPPING:
            raise InvalidPayloadError(
                f"{owner}.{name} expects a {relation.target} object, got {kind.value}"
            )
        return self._map(relation.target, payload, None, depth)


def _same_identifier(id: Any, data_id: Any) -> bool:
    # strict: 1, 1.0 and True are different identifiers
    return type(id) is type(data_id) and id == data_id


def _without(names: Iterable[str], dropped: set) -> List[str]:
    return [name for name in names if name not in dropped]


def _merge(target: Failures, failures: Failures) -> None:
    for key, messages in failures.items():
        target.setdefault(key, []).extend(messages)


__all__ = ["Mapper"]
