"""
User schemas for validation and serialization.

CandidateRecord is the not-yet-committed shape produced from one CSV row;
UserResponse is what the user store hands back after creation.
"""

from pydantic import Field
from typing import Optional
from enum import Enum
from datetime import datetime

from models.base import BaseSchema


class UserRole(str, Enum):
    """Canonical user roles."""
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"
    PARENT = "parent"


# The users table stores roles as uppercase enum values
DB_ROLE_BY_USER_ROLE: dict[UserRole, str] = {
    UserRole.ADMIN: "ADMIN",
    UserRole.TEACHER: "TEACHER",
    UserRole.STUDENT: "STUDENT",
    UserRole.PARENT: "GUARDIAN",
}

USER_ROLE_BY_DB_ROLE: dict[str, UserRole] = {
    db_role: role for role, db_role in DB_ROLE_BY_USER_ROLE.items()
}


class CandidateRecord(BaseSchema):
    """
    User built from one imported row, not yet stored.

    Identity and creation timestamp are assigned by the user store.
    name/email stay optional so a row is always transformable; mapping
    validation is what guarantees they are present.
    """

    name: Optional[str] = Field(None, description="Full name")
    email: Optional[str] = Field(None, description="Email address")
    role: UserRole = Field(
        UserRole.STUDENT,
        description="Canonical role (unknown values fall back to student)"
    )
    phone: Optional[str] = Field(None, description="Phone number")
    avatar: Optional[str] = Field(None, description="Avatar URL")
    is_active: bool = Field(True, description="Whether the user is active")
    grade: Optional[str] = Field(None, description="Base group, e.g. '10° Grado'")


class UserResponse(BaseSchema):
    """User as stored."""

    id: str = Field(..., description="User ID")
    name: str = Field(..., description="Full name")
    email: str = Field(..., description="Email address")
    role: UserRole = Field(..., description="Canonical role")
    phone: Optional[str] = Field(None, description="Phone number")
    avatar: Optional[str] = Field(None, description="Avatar URL")
    is_active: bool = Field(..., description="Whether the user is active")
    grade: Optional[str] = Field(None, description="Base group (not a users column)")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
