"""
User service for the user store.

Creates one user per call; this is the per-record creation capability the
batch commit fans out over.
"""

from datetime import datetime
from typing import Optional
import structlog

from config import get_admin_client, get_supabase_client, get_settings
from models.user import (
    CandidateRecord,
    UserResponse,
    UserRole,
    DB_ROLE_BY_USER_ROLE,
    USER_ROLE_BY_DB_ROLE,
)
from exceptions import (
    UserEmailExistsError,
    ValidationError,
    DatabaseError
)

logger = structlog.get_logger(__name__)

# Postgres unique_violation
UNIQUE_VIOLATION_CODE = "23505"

# users.name column width
NAME_MAX_LENGTH = 255


class UserService:
    """
    User business logic.

    Handles lookups by email and single-user creation.
    """

    def __init__(self):
        # Service role key bypasses row-level security on users when configured
        self.db = get_admin_client() or get_supabase_client()
        self.table = get_settings().users_table

    # ===================
    # READ OPERATIONS
    # ===================

    def get_by_email(self, email: str) -> Optional[UserResponse]:
        """
        Get a user by email.

        Args:
            email: Email address (compared lower-cased)

        Returns:
            UserResponse or None if not found
        """
        logger.debug("getting_user_by_email", email=email)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("email", email.lower())
                .execute()
            )

            if not result.data:
                return None

            return _row_to_user(result.data[0])

        except Exception as e:
            logger.error(
                "get_user_by_email_failed",
                email=email,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create_from_candidate(self, candidate: CandidateRecord) -> UserResponse:
        """
        Create a user from an imported candidate.

        Args:
            candidate: Transformed CSV row

        Returns:
            Created UserResponse (grade carried over, it is not a users column)

        Raises:
            ValidationError: If name or email is missing, or the name is too
                long for the users table
            UserEmailExistsError: If the email is already taken
            DatabaseError: If the insert fails
        """
        if not candidate.name or not candidate.email:
            raise ValidationError(
                message="Name and email are required to create a user",
                code="USER_MISSING_FIELDS",
                details={"name": candidate.name, "email": candidate.email}
            )

        if len(candidate.name) > NAME_MAX_LENGTH:
            logger.warning("user_name_too_long", email=candidate.email, length=len(candidate.name))
            raise ValidationError(
                message=f"Name is longer than {NAME_MAX_LENGTH} characters",
                code="USER_NAME_TOO_LONG",
                details={"email": candidate.email, "length": len(candidate.name)}
            )

        logger.info("creating_user", email=candidate.email, role=candidate.role.value)

        if self.get_by_email(candidate.email):
            raise UserEmailExistsError(candidate.email)

        now = datetime.utcnow().isoformat()
        insert_data = {
            "name": candidate.name,
            "email": candidate.email.lower(),
            "role": DB_ROLE_BY_USER_ROLE[candidate.role],
            "phone": candidate.phone or None,
            "profile_image": candidate.avatar or None,
            "status": "ACTIVE" if candidate.is_active else "INACTIVE",
            "createdAt": now,
            "updatedAt": now,
        }

        try:
            result = (
                self.db.table(self.table)
                .insert(insert_data)
                .execute()
            )
        except Exception as e:
            logger.error(
                "create_user_failed",
                email=candidate.email,
                error=str(e)
            )
            if UNIQUE_VIOLATION_CODE in str(e):
                raise UserEmailExistsError(candidate.email)
            raise DatabaseError("insert", str(e))

        user = _row_to_user(result.data[0], grade=candidate.grade)

        logger.info(
            "user_created",
            user_id=user.id,
            email=user.email,
            role=user.role.value
        )

        return user


# ===================
# HELPER FUNCTIONS
# ===================

def _row_to_user(row: dict, grade: Optional[str] = None) -> UserResponse:
    """Convert a users table row to UserResponse."""
    db_role = row.get("role")
    return UserResponse(
        id=str(row["id"]),
        name=row["name"],
        email=row["email"],
        role=USER_ROLE_BY_DB_ROLE.get(db_role) or UserRole(str(db_role).lower()),
        phone=row.get("phone") or None,
        avatar=row.get("profile_image") or None,
        is_active=row.get("status", "ACTIVE") == "ACTIVE",
        grade=grade,
        created_at=row.get("createdAt"),
        updated_at=row.get("updatedAt"),
    )


# Singleton instance for convenience
_user_service: Optional[UserService] = None

def get_user_service() -> UserService:
    """Get or create UserService instance."""
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
