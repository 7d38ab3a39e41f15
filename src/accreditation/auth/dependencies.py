"""Request authentication for the API.

The identity provider issues the bearer token; this service only checks it,
maps its subject to the local user and applies the role hierarchy.

Usage:
    @router.get("/verifications/status")
    def status(user: User = Depends(get_current_user)):
        ...

    @router.get("/admin/verifications/stats")
    def stats(admin: User = Depends(require_role(UserRole.ADMIN))):
        ...
"""

from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..bootstrap import Services
from ..dependencies import get_services
from ..errors import NotFoundError
from ..models.user import User
from .jwt import TokenError, decode_identity_token
from .roles import UserRole, has_role

security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    services: Services = Depends(get_services),
) -> User:
    """Validate the bearer token and return the local user.

    Raises:
        HTTPException 401: If the token is invalid or expired, or the identity
            has never been synced
        HTTPException 403: If the user is suspended
    """
    try:
        external_id = decode_identity_token(credentials.credentials, services.settings)
    except TokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user = services.directory.resolve(external_id)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.status != "ACTIVE":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is suspended",
        )

    return user


def require_role(required_role: UserRole) -> Callable:
    """Create a dependency that enforces a minimum role.

    Higher roles inherit everything lower roles may do
    (SUPER_ADMIN > ADMIN > INVESTOR).

    Example:
        @router.put("/{verification_id}/review")
        def review(admin: User = Depends(require_role(UserRole.ADMIN))):
            ...
    """

    def role_dependency(current_user: User = Depends(get_current_user)) -> User:
        try:
            user_role = UserRole(current_user.role)
        except ValueError:
            # Invalid role in database (prevented by CHECK constraint)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Invalid user role: {current_user.role}",
            )

        if not has_role(user_role, required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {required_role.value}",
            )

        return current_user

    return role_dependency
