"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    PaginatedResponse
)
from models.user import (
    UserRole,
    CandidateRecord,
    UserResponse,
)
from models.user_import import (
    TargetField,
    WorkflowState,
    MappingEntry,
    ColumnMapping,
    TargetFieldInfo,
    MappingEntrySchema,
    ColumnMappingUpdate,
    CommitSummary,
    ImportSessionResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "PaginatedResponse",

    # User
    "UserRole",
    "CandidateRecord",
    "UserResponse",

    # User import
    "TargetField",
    "WorkflowState",
    "MappingEntry",
    "ColumnMapping",
    "TargetFieldInfo",
    "MappingEntrySchema",
    "ColumnMappingUpdate",
    "CommitSummary",
    "ImportSessionResponse",
]
