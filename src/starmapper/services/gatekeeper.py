"""
Gatekeeper Service - Field-Level Authorization

Filters incoming field names through the gates declared on entity fields.
A failed IGNORE gate drops the field; a failed RESTRICT gate aborts the
whole mapping.
"""

import logging
from typing import Any, Callable, Iterable, List

from ..core.errors import PermissionDeniedError
from ..core.metadata import EntityDescriptor, OnFailure
from ..persistence.base import MetadataStore

logger = logging.getLogger(__name__)

PermissionCheck = Callable[[str, Any], bool]


class Gatekeeper:
    """Applies per-field GateRules with a permission check."""

    def __init__(self, store: MetadataStore, check: PermissionCheck):
        self.store = store
        self.check = check

    def filter_fields(self, entity: Any, descriptor: EntityDescriptor,
                      candidates: Iterable[str]) -> List[str]:
        """
        Return the candidate fields the caller may set.

        Declared fields are evaluated in declaration order so a RESTRICT
        failure is raised for the same field every time; undeclared
        candidates follow and always pass.

        Raises:
            PermissionDeniedError: On a failed RESTRICT gate
        """
        candidates = list(candidates)
        pending = set(candidates)
        ordered = [name for name in descriptor.declared() if name in pending]
        declared = set(ordered)
        ordered += [name for name in candidates if name not in declared]

        allowed = set()
        for name in ordered:
            if self._passes(entity, descriptor.name, name):
                allowed.add(name)

        return [name for name in candidates if name in allowed]

    def _passes(self, entity: Any, type_name: str, field: str) -> bool:
        gate = self.store.get_gate_rule(type_name, field)
        if gate is None or self.check(gate.ability, entity):
            return True

        if gate.on_failure is OnFailure.IGNORE:
            logger.debug(f"Gate '{gate.ability}' dropped field {type_name}.{field}")
            return False

        logger.warning(f"Gate '{gate.ability}' denied field {type_name}.{field}")
        raise PermissionDeniedError(entity, field, gate.ability)


__all__ = ["Gatekeeper", "PermissionCheck"]
