"""Authentication and authorization.

Bearer tokens come from the external identity provider; roles and
permissions are local.
"""

from .roles import UserRole, has_permission, has_role

__all__ = ["UserRole", "has_role", "has_permission"]
