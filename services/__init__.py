"""
Business logic services.

Each service handles one step of the user import, plus the user store.
"""

from services.user_service import UserService, get_user_service
from services.column_mapping_service import auto_map, validate_mapping, map_row
from services.import_validation_service import validate_data, is_valid_email
from services.user_transform_service import (
    transform_row,
    transform_document,
    resolve_role,
    parse_active,
)
from services.batch_commit_service import (
    BatchResult,
    RecordFailure,
    commit,
    commit_batch,
)
from services.import_workflow import (
    WorkflowEvent,
    Effect,
    Transition,
    transition,
    is_allowed,
    available_actions,
)
from services.import_session_service import ImportSession
from services.import_template_service import build_import_template, TEMPLATE_FILENAME

__all__ = [
    "UserService",
    "get_user_service",
    "auto_map",
    "validate_mapping",
    "map_row",
    "validate_data",
    "is_valid_email",
    "transform_row",
    "transform_document",
    "resolve_role",
    "parse_active",
    "BatchResult",
    "RecordFailure",
    "commit",
    "commit_batch",
    "WorkflowEvent",
    "Effect",
    "Transition",
    "transition",
    "is_allowed",
    "available_actions",
    "ImportSession",
    "build_import_template",
    "TEMPLATE_FILENAME",
]
