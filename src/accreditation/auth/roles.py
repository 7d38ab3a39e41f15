"""User roles and permission hierarchy.

Role Hierarchy (descending permissions):
- SUPER_ADMIN: Everything, including role management and verification purge
- ADMIN: Review verifications, read documents and audit logs
- INVESTOR: Submit and track their own verification

Permission Matrix:
┌──────────────────────┬─────────────┬───────┬──────────┐
│ Permission           │ SUPER_ADMIN │ ADMIN │ INVESTOR │
├──────────────────────┼─────────────┼───────┼──────────┤
│ verification.submit  │      ✓      │   ✓   │    ✓     │
│ verification.view_own│      ✓      │   ✓   │    ✓     │
│ verification.view_all│      ✓      │   ✓   │          │
│ verification.review  │      ✓      │   ✓   │          │
│ document.view_all    │      ✓      │   ✓   │          │
│ user.view_all        │      ✓      │   ✓   │          │
│ audit.view           │      ✓      │   ✓   │          │
│ user.manage_roles    │      ✓      │       │          │
│ verification.purge   │      ✓      │       │          │
└──────────────────────┴─────────────┴───────┴──────────┘
"""

from enum import Enum
from typing import Dict, FrozenSet, Set


class UserRole(str, Enum):
    """User roles.

    Values are stored as TEXT in the database and must match exactly.
    """
    INVESTOR = "INVESTOR"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


# Role hierarchy: Each role includes permissions of all roles below it
ROLE_HIERARCHY: Dict[UserRole, Set[UserRole]] = {
    UserRole.SUPER_ADMIN: {UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.INVESTOR},
    UserRole.ADMIN: {UserRole.ADMIN, UserRole.INVESTOR},
    UserRole.INVESTOR: {UserRole.INVESTOR},
}

_INVESTOR_PERMISSIONS = frozenset({
    "verification.submit",
    "verification.view_own",
    "profile.view_own",
    "profile.update_own",
})

_ADMIN_PERMISSIONS = _INVESTOR_PERMISSIONS | frozenset({
    "verification.view_all",
    "verification.review",
    "document.view_all",
    "user.view_all",
    "audit.view",
})

_SUPER_ADMIN_PERMISSIONS = _ADMIN_PERMISSIONS | frozenset({
    "user.manage_roles",
    "verification.purge",
})

ROLE_PERMISSIONS: Dict[UserRole, FrozenSet[str]] = {
    UserRole.INVESTOR: _INVESTOR_PERMISSIONS,
    UserRole.ADMIN: _ADMIN_PERMISSIONS,
    UserRole.SUPER_ADMIN: _SUPER_ADMIN_PERMISSIONS,
}


def has_role(user_role: UserRole, required_role: UserRole) -> bool:
    """Check if a user role satisfies a minimum role.

    Examples:
        >>> has_role(UserRole.SUPER_ADMIN, UserRole.ADMIN)
        True
        >>> has_role(UserRole.INVESTOR, UserRole.ADMIN)
        False
    """
    return required_role in ROLE_HIERARCHY.get(user_role, set())


def has_permission(user_role: UserRole, permission: str) -> bool:
    """Check a named permission against the permission matrix.

    Examples:
        >>> has_permission(UserRole.ADMIN, "verification.review")
        True
        >>> has_permission(UserRole.ADMIN, "user.manage_roles")
        False
    """
    return permission in ROLE_PERMISSIONS.get(user_role, frozenset())
