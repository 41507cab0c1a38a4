"""
Validation Service - Rule Construction and Checking

✅ Template-driven validation:
Builds concrete rule strings from the rule templates declared on entity
fields and hands them to a pluggable rule checker. The rule language itself
belongs to the checker; this service only fills in the placeholders below.

Placeholders, substituted in this order:
- ``{static.entity}``      entity type name
- ``{this.identifier}``    identifier value of the data (``NULL`` when absent)
- ``{static.identifier}``  identifier field name

When the entity already exists in the store every ``required`` becomes
``sometimes|required``, so partial updates only check fields they carry.
"""

from abc import ABC, abstractmethod
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from ..core.errors import ValidationFailedError
from ..core.metadata import EntityDescriptor
from ..persistence.base import MetadataStore

logger = logging.getLogger(__name__)

Failures = Dict[str, List[str]]

ENTITY_TOKEN = "{static.entity}"
IDENTIFIER_VALUE_TOKEN = "{this.identifier}"
IDENTIFIER_NAME_TOKEN = "{static.identifier}"
REQUIRED = "required"
RELAXED_REQUIRED = "sometimes|required"


class RuleChecker(ABC):
    """
    Abstract interface for rule checkers.

    A checker receives the data and a mapping ``{field key: rule string}``
    and reports failures as ``{field key: [messages]}``.
    """

    @abstractmethod
    def check(self, data: Mapping[str, Any], rules: Mapping[str, str]) -> Failures:
        """Check data against rules; an empty result means valid"""
        pass


class CallableRuleChecker(RuleChecker):
    """
    Adapts a plain callable to the RuleChecker interface.

    The callable may return a failure mapping, a falsy value when the data
    is valid, or a validator object exposing ``fails()`` and ``errors()``.
    """

    def __init__(self, func: Callable[[Mapping[str, Any], Mapping[str, str]], Any]):
        self.func = func

    def check(self, data: Mapping[str, Any], rules: Mapping[str, str]) -> Failures:
        result = self.func(data, rules)
        if hasattr(result, "fails"):
            result = result.errors() if result.fails() else None
        return normalize_failures(result)


def normalize_failures(result: Any) -> Failures:
    """Coerce a checker result to ``{key: [messages]}``."""
    if not result:
        return {}
    failures: Failures = {}
    for key, messages in dict(result).items():
        if isinstance(messages, str):
            messages = [messages]
        messages = [str(message) for message in messages]
        if messages:
            failures[key] = messages
    return failures


class RuleValidator:
    """
    Builds rule mappings for entity fields and runs them through a checker.
    """

    def __init__(self, store: MetadataStore, checker: RuleChecker,
                 null_identifier: str = "NULL", relax_required: bool = True):
        self.store = store
        self.checker = checker
        self.null_identifier = null_identifier
        self.relax_required = relax_required

    def prepare(self, rule: str, descriptor: EntityDescriptor,
                identifier_value: Any, exists: bool) -> str:
        """Substitute placeholders in a rule template."""
        if identifier_value is None:
            identifier_value = self.null_identifier

        rule = rule.replace(ENTITY_TOKEN, descriptor.name)
        rule = rule.replace(IDENTIFIER_VALUE_TOKEN, str(identifier_value))
        rule = rule.replace(IDENTIFIER_NAME_TOKEN, descriptor.identifier)

        if exists and self.relax_required:
            rule = rule.replace(REQUIRED, RELAXED_REQUIRED)

        return rule

    def build_rules(self, descriptor: EntityDescriptor, fields: Iterable[str],
                    identifier_value: Any, entity: Any) -> Dict[str, str]:
        """
        Build ``{field key: rule}`` for the fields carrying a FieldRule.

        Fields without a FieldRule contribute nothing.
        """
        exists: Optional[bool] = None
        rules: Dict[str, str] = {}

        for name in fields:
            field_rule = self.store.get_field_rule(descriptor.name, name)
            if field_rule is None:
                continue
            if exists is None:
                exists = self.store.is_existing(entity)
            rule = self.prepare(field_rule.rule, descriptor, identifier_value, exists)
            if rule:
                rules[field_rule.key_for(name)] = rule

        return rules

    def collect(self, descriptor: EntityDescriptor, fields: Iterable[str],
                data: Mapping[str, Any], entity: Any, identifier_value: Any = None) -> Failures:
        """Check ``data`` against the rules of ``fields`` and return the failures."""
        rules = self.build_rules(descriptor, fields, identifier_value, entity)
        if not rules:
            return {}
        return normalize_failures(self.checker.check(data, rules))

    def validate(self, descriptor: EntityDescriptor, fields: Iterable[str],
                 data: Mapping[str, Any], entity: Any, identifier_value: Any = None) -> None:
        """
        Validate ``data`` against the rules of ``fields``.

        Raises:
            ValidationFailedError: With every failing key of this batch
        """
        failures = self.collect(descriptor, fields, data, entity, identifier_value)
        raise_for_failures(failures, descriptor.name)


def raise_for_failures(failures: Failures, type_name: Optional[str] = None) -> None:
    """Raise ValidationFailedError when ``failures`` is not empty."""
    if failures:
        logger.debug(f"Validation failed for {type_name}: {sorted(failures)}")
        raise ValidationFailedError(failures, type_name)


__all__ = [
    "RuleChecker", "CallableRuleChecker", "RuleValidator", "normalize_failures",
    "raise_for_failures", "Failures",
]
