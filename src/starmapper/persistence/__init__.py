"""
StarMapper Persistence Module

Metadata stores the mapper reads entity descriptors, rules and managed
instances from.
"""

from .base import MetadataStore
from .memory import MemoryMetadataStore
from .sql import SQLModelMetadataStore

__all__ = [
    "MetadataStore",
    "MemoryMetadataStore",
    "SQLModelMetadataStore",
]
