"""Seed the first SUPER_ADMIN.

Role changes through the API need an existing SUPER_ADMIN, so the first one
is promoted here, once, during initial setup. The account must already exist
at the identity provider; it is synced locally if the webhook has not
delivered it yet.

Usage:
    accreditation-seed-admin

Environment Variables:
    DATABASE_URL: SQLAlchemy connection string
    ADMIN_EXTERNAL_ID: Identity-provider user id of the admin (required)
    ADMIN_EMAIL: Email of the admin (required)
    ADMIN_FIRST_NAME, ADMIN_LAST_NAME: Optional display name
"""

import os
import sys
from typing import Optional

from .auth.roles import UserRole
from .config import Settings
from .database import Database
from .errors import AccreditationError
from .models.user import User
from .users.service import IdentityDirectory


def seed_super_admin(
    directory: IdentityDirectory,
    external_id: str,
    email: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> User:
    """Sync the identity and promote it to SUPER_ADMIN.

    Running it again for the same identity leaves the role untouched. The
    promotion is audited with the admin as its own actor.

    Raises:
        ValidationError: If external_id or email is missing or malformed
        ConflictError: If the email belongs to another identity
    """
    user = directory.sync_from_identity(external_id, email, first_name, last_name)
    if user.role == UserRole.SUPER_ADMIN.value:
        return user
    return directory.change_role(user.id, UserRole.SUPER_ADMIN, actor_id=user.id)


def main() -> None:
    """Create or promote the initial SUPER_ADMIN."""
    external_id = os.getenv("ADMIN_EXTERNAL_ID")
    email = os.getenv("ADMIN_EMAIL")
    if not external_id or not email:
        print("ERROR: ADMIN_EXTERNAL_ID and ADMIN_EMAIL environment variables are required")
        print("Example: ADMIN_EXTERNAL_ID=user_2abc ADMIN_EMAIL=ops@example.com accreditation-seed-admin")
        sys.exit(1)

    settings = Settings()
    database = Database(settings.DATABASE_URL)

    try:
        user = seed_super_admin(
            IdentityDirectory(database),
            external_id,
            email,
            os.getenv("ADMIN_FIRST_NAME"),
            os.getenv("ADMIN_LAST_NAME"),
        )
    except AccreditationError as e:
        print(f"ERROR: Failed to seed admin user: {e.message}")
        sys.exit(1)
    finally:
        database.dispose()

    print("SUCCESS: Super admin ready")
    print(f"  ID:          {user.id}")
    print(f"  External ID: {user.external_id}")
    print(f"  Email:       {user.email}")
    print(f"  Role:        {user.role}")


if __name__ == "__main__":
    main()
