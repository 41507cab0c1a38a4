"""
StarMapper Authorization Context

Context-variable based permission state for the current request, and a
ready-made permission check for field gates.

Usage::

    set_user_permissions(["users.edit"])
    mapper = Mapper(store, permission_check=context_permission_check)
"""

from contextvars import ContextVar
from typing import Any, List, Optional


class AuthorizationError(Exception):
    """Raised when user lacks required permissions or roles."""
    pass


OWNER_ABILITY = "owner"

# Context variables for storing current request context
current_user_permissions: ContextVar[List[str]] = ContextVar('current_user_permissions', default=[])
current_user_roles: ContextVar[List[str]] = ContextVar('current_user_roles', default=[])
current_user_id: ContextVar[Optional[str]] = ContextVar('current_user_id', default=None)


def get_user_permissions() -> List[str]:
    return current_user_permissions.get()


def set_user_permissions(permissions: List[str]):
    """
    Set user permissions in context.

    Args:
        permissions: List of permission strings
    """
    current_user_permissions.set(list(permissions))


def get_user_roles() -> List[str]:
    return current_user_roles.get()


def set_user_roles(roles: List[str]):
    """
    Set user roles in context.

    Args:
        roles: List of role strings
    """
    current_user_roles.set(list(roles))


def get_user_id() -> Optional[str]:
    return current_user_id.get()


def set_user_id(user_id: Optional[str]):
    """
    Set user ID in context.

    Args:
        user_id: User ID string
    """
    current_user_id.set(user_id)


def clear_auth_context():
    """Clear all authentication context variables."""
    current_user_permissions.set([])
    current_user_roles.set([])
    current_user_id.set(None)


def has_permission(permission: str) -> bool:
    """
    Check if current user has a specific permission.

    Roles count as permissions too, so a gate ability can name either.
    """
    return permission in get_user_permissions() or permission in get_user_roles()


def is_owner(entity: Any) -> bool:
    """Check that the entity belongs to the current user."""
    user_id = get_user_id()
    if user_id is None:
        return False
    for attr in ('owner_id', 'user_id'):
        if hasattr(entity, attr):
            return getattr(entity, attr) == user_id
    return False


def context_permission_check(ability: str, entity: Any) -> bool:
    """
    Permission check backed by the current auth context.

    The special ability ``"owner"`` passes when the entity's ``owner_id``
    (or ``user_id``) matches the current user id.
    """
    if ability == OWNER_ABILITY:
        return is_owner(entity)
    return has_permission(ability)


__all__ = [
    "AuthorizationError", "OWNER_ABILITY",
    "get_user_permissions", "set_user_permissions",
    "get_user_roles", "set_user_roles",
    "get_user_id", "set_user_id",
    "clear_auth_context", "has_permission", "is_owner",
    "context_permission_check",
]
