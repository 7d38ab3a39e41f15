"""User endpoints.

- GET /users/me           Current user profile
- PUT /users/{id}/role    Change a user's role (SUPER_ADMIN only)
"""

from uuid import UUID

from fastapi import APIRouter, Depends

from ..auth.dependencies import get_current_user, require_role
from ..auth.roles import UserRole
from ..dependencies import get_directory
from ..models.user import User
from .schemas import RoleChangeRequest, UserResponse
from .service import IdentityDirectory

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.put(
    "/{user_id}/role",
    response_model=UserResponse,
    summary="Change a user's role (SUPER_ADMIN only)",
)
def change_user_role(
    user_id: UUID,
    body: RoleChangeRequest,
    current_user: User = Depends(require_role(UserRole.SUPER_ADMIN)),
    directory: IdentityDirectory = Depends(get_directory),
) -> UserResponse:
    user = directory.change_role(user_id, body.role, actor_id=current_user.id)
    return UserResponse.model_validate(user)
