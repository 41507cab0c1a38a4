"""
Resolver Service - Entity Resolution

Returns the managed entity for an identifier, or a fresh one from the
factory when no identifier is given.
"""

import logging
from typing import Any, Callable, Optional

from ..core.errors import EntityNotFoundError
from ..persistence.base import MetadataStore

logger = logging.getLogger(__name__)

Factory = Callable[[str], Any]


class EntityResolver:
    """Resolves entities through the store, creating them via the factory."""

    def __init__(self, store: MetadataStore, factory: Optional[Factory] = None):
        self.store = store
        self.factory = factory or store.create

    def resolve(self, type_name: str, id: Any = None) -> Any:
        """
        Resolve an entity of ``type_name``.

        Args:
            type_name: Entity type name
            id: Identifier; when given the entity must already exist

        Returns:
            The managed entity, or a new one when ``id`` is None

        Raises:
            EntityNotFoundError: If ``id`` is given and the store has no match
        """
        if id is not None:
            entity = self.store.find(type_name, id)
            if entity is None:
                raise EntityNotFoundError(type_name, id)
            return entity

        logger.debug(f"Creating new {type_name}")
        return self.factory(type_name)


__all__ = ["EntityResolver", "Factory"]
