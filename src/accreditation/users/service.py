"""Identity directory.

Mirrors identity-provider accounts into the local user table and resolves
the provider's opaque user id to a local User. The service never
authenticates anyone itself.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError as SAIntegrityError

from ..audit.service import log_audit_event
from ..auth.roles import UserRole
from ..database import Database, retry_once_on_storage_error
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models.user import EMAIL_PATTERN, User

logger = logging.getLogger(__name__)


class IdentityDirectory:
    """Lookup and synchronisation of identity-provider users."""

    def __init__(self, database: Database):
        self.database = database

    @retry_once_on_storage_error
    def resolve(self, external_id: str) -> User:
        """Resolve an external user id to the local user.

        Raises:
            NotFoundError: If the identity has never been synced
        """
        with self.database.session() as session:
            user = session.query(User).filter(User.external_id == external_id).first()
            if not user:
                raise NotFoundError("User not found")
            return user

    @retry_once_on_storage_error
    def get(self, user_id: UUID) -> User:
        with self.database.session() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFoundError("User not found")
            return user

    def sync_from_identity(
        self,
        external_id: str,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        """Create or update the local mirror of an identity-provider account.

        New accounts start as INVESTOR. Existing accounts get their email and
        name refreshed; role and status are never taken from the provider.

        Raises:
            ValidationError: If external_id or email is missing or malformed
            ConflictError: If the email already belongs to another identity
        """
        if not external_id:
            raise ValidationError("External user id is required")
        if not email or not EMAIL_PATTERN.match(email):
            raise ValidationError("A valid email address is required")

        with self.database.session() as session:
            user = session.query(User).filter(User.external_id == external_id).first()
            created = user is None

            if created:
                user = User(
                    external_id=external_id,
                    email=email,
                    first_name=first_name,
                    last_name=last_name,
                    role=UserRole.INVESTOR.value,
                )
                session.add(user)
            else:
                user.email = email
                user.first_name = first_name
                user.last_name = last_name

            try:
                session.flush()
            except SAIntegrityError:
                raise ConflictError("Email address is already registered to another account")

            if created:
                log_audit_event(
                    db=session,
                    action="user.synced",
                    actor_id=user.id,
                    entity_type="user",
                    entity_id=user.id,
                    metadata={"external_id": external_id, "email": user.email},
                )
                logger.info(f"User created from identity provider: {user.id}")

            return user

    def deactivate_external_user(self, external_id: str) -> bool:
        """Suspend the mirror of a deleted identity.

        The row is kept because verification history references it.
        Suspending an already suspended user changes nothing.
        Returns False if the identity was never synced.
        """
        with self.database.session() as session:
            user = session.query(User).filter(User.external_id == external_id).first()
            if not user:
                return False
            if user.status == "SUSPENDED":
                return True

            old_status = user.status
            user.status = "SUSPENDED"

            log_audit_event(
                db=session,
                action="user.suspended",
                entity_type="user",
                entity_id=user.id,
                metadata={
                    "external_id": external_id,
                    "old_status": old_status,
                    "reason": "identity_deleted",
                },
            )
            logger.info(f"User suspended after identity deletion: {user.id}")
            return True

    def change_role(self, user_id: UUID, new_role: UserRole, actor_id: UUID) -> User:
        """Change a user's role and record who did it.

        Raises:
            ValidationError: If new_role is not a UserRole
            NotFoundError: If the user does not exist
        """
        if not isinstance(new_role, UserRole):
            raise ValidationError("Invalid role")

        with self.database.session() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFoundError("User not found")

            old_role = user.role
            user.role = new_role.value

            log_audit_event(
                db=session,
                action="user.role_changed",
                actor_id=actor_id,
                entity_type="user",
                entity_id=user.id,
                metadata={"old_role": old_role, "new_role": new_role.value},
            )
            return user
