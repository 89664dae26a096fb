"""
Row -> CandidateRecord transformation for user imports.

Never fails: unmapped or malformed values degrade to defaults.
"""

from typing import Optional
import structlog

from models.user import CandidateRecord, UserRole
from models.user_import import ColumnMapping, TargetField
from parsers.csv_parser import CSVRow, TabularDocument
from services.column_mapping_service import map_row
from utils.text_utils import clean_text, lookup_key

logger = structlog.get_logger(__name__)

# Canonical and Spanish role names accepted in the role column
ROLE_SYNONYMS: dict[str, UserRole] = {
    "admin": UserRole.ADMIN,
    "administrador": UserRole.ADMIN,
    "teacher": UserRole.TEACHER,
    "profesor": UserRole.TEACHER,
    "student": UserRole.STUDENT,
    "estudiante": UserRole.STUDENT,
    "parent": UserRole.PARENT,
    "padre": UserRole.PARENT,
    "guardian": UserRole.PARENT,
}

# Unknown or empty role values fall back to this role, not an error
DEFAULT_ROLE = UserRole.STUDENT

ACTIVE_VALUES = frozenset({"true", "activo"})

# Target fields copied as trimmed text, keyed to CandidateRecord attributes
_TEXT_FIELDS: dict[TargetField, str] = {
    TargetField.NAME: "name",
    TargetField.EMAIL: "email",
    TargetField.PHONE: "phone",
    TargetField.AVATAR: "avatar",
    TargetField.GRADE: "grade",
}


def resolve_role(value: Optional[str]) -> UserRole:
    """Case-insensitive synonym lookup; anything unknown becomes student."""
    return ROLE_SYNONYMS.get(lookup_key(value), DEFAULT_ROLE)


def parse_active(value: Optional[str]) -> bool:
    """True for "true"/"activo" (any case), False for anything else."""
    return lookup_key(value) in ACTIVE_VALUES


def transform_row(row: CSVRow, mapping: ColumnMapping) -> CandidateRecord:
    """
    Build a candidate user from one CSV row.

    - isActive: "true"/"activo" -> True, other values -> False, unmapped -> True
    - role: synonym lookup, unknown/empty/unmapped -> student
    - other fields: trimmed text, None when blank or unmapped

    Args:
        row: Header-keyed CSV row
        mapping: Column mapping (later entries win for a repeated field)

    Returns:
        CandidateRecord
    """
    mapped = map_row(row, mapping)

    values: dict = {
        attribute: clean_text(mapped.get(target))
        for target, attribute in _TEXT_FIELDS.items()
    }
    values["role"] = resolve_role(mapped.get(TargetField.ROLE))
    values["is_active"] = (
        parse_active(mapped[TargetField.IS_ACTIVE])
        if TargetField.IS_ACTIVE in mapped
        else True
    )

    return CandidateRecord(**values)


def transform_document(document: TabularDocument, mapping: ColumnMapping) -> list[CandidateRecord]:
    """Transform every row, preserving file order."""
    records = [transform_row(row, mapping) for row in document.rows]

    logger.info(
        "rows_transformed",
        count=len(records),
        mapped_fields=sorted({e.field.value for e in mapping})
    )

    return records
