"""
StarMapper Services

The collaborating steps of one entity build: resolution, gating,
validation and assignment.
"""

from .assigner import Assigner, SetterRegistry
from .gatekeeper import Gatekeeper
from .resolver import EntityResolver
from .validation_service import CallableRuleChecker, RuleChecker, RuleValidator

__all__ = [
    "Assigner",
    "SetterRegistry",
    "Gatekeeper",
    "EntityResolver",
    "RuleChecker",
    "CallableRuleChecker",
    "RuleValidator",
]
