"""
StarMapper - Recursive Entity Mapping with Field Gates and Rule Templates

Maps decoded JSON onto entities managed by an object store, enforcing
per-field permission gates and validation rule templates declared on
entity fields.
"""

from .core import (
    Mapper, MapperError, UnknownEntityError, IdentifierConflictError, EntityNotFoundError,
    PermissionDeniedError, ValidationFailedError, InvalidPayloadError, MappingDepthError,
    Cardinality, OnFailure, RelationInfo, EntityDescriptor, FieldRule, GateRule,
    validation, keeper,
)
from .persistence import MetadataStore, MemoryMetadataStore, SQLModelMetadataStore
from .services import RuleChecker, CallableRuleChecker, SetterRegistry
from .auth import AuthorizationError, context_permission_check
from .config import ApplicationConfig, MapperConfig, LoggingConfig, Environment

__version__ = "0.1.0"

__all__ = [
    # Core mapping
    'Mapper',
    'EntityDescriptor',
    'RelationInfo',
    'Cardinality',
    'FieldRule',
    'GateRule',
    'OnFailure',
    'validation',
    'keeper',

    # Errors
    'MapperError',
    'UnknownEntityError',
    'IdentifierConflictError',
    'EntityNotFoundError',
    'PermissionDeniedError',
    'ValidationFailedError',
    'InvalidPayloadError',
    'MappingDepthError',
    'AuthorizationError',

    # Stores
    'MetadataStore',
    'MemoryMetadataStore',
    'SQLModelMetadataStore',

    # Collaborators
    'RuleChecker',
    'CallableRuleChecker',
    'SetterRegistry',
    'context_permission_check',

    # Configuration
    'ApplicationConfig',
    'MapperConfig',
    'LoggingConfig',
    'Environment',
]
