"""
User import schemas.

Target schema fields, the column mapping value type, workflow states and
the request/response models of the import API.
"""

from dataclasses import dataclass, field as dataclass_field
from datetime import datetime
from enum import Enum
from typing import Iterator, Optional

from pydantic import Field

from models.base import BaseSchema


class TargetField(str, Enum):
    """
    Fixed user attributes a CSV column can be mapped to.

    Declaration order is significant: auto-mapping and mapping
    validation both walk the fields in this order.
    """
    NAME = "name"
    EMAIL = "email"
    ROLE = "role"
    PHONE = "phone"
    AVATAR = "avatar"
    IS_ACTIVE = "isActive"
    GRADE = "grade"

    @property
    def label(self) -> str:
        """Display label shown in the mapping editor."""
        return FIELD_LABELS[self]

    @property
    def required(self) -> bool:
        """Whether an import can proceed without this field mapped."""
        return self in REQUIRED_FIELDS


FIELD_LABELS: dict[TargetField, str] = {
    TargetField.NAME: "Name",
    TargetField.EMAIL: "Email",
    TargetField.ROLE: "Role",
    TargetField.PHONE: "Phone",
    TargetField.AVATAR: "Avatar URL",
    TargetField.IS_ACTIVE: "Active Status",
    TargetField.GRADE: "Base Group",
}

REQUIRED_FIELDS: frozenset[TargetField] = frozenset({
    TargetField.NAME,
    TargetField.EMAIL,
    TargetField.ROLE,
})


class WorkflowState(str, Enum):
    """Import session states."""
    UPLOAD = "upload"
    MAPPING = "mapping"
    PREVIEW = "preview"
    IMPORTING = "importing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ===================
# COLUMN MAPPING
# ===================

@dataclass(frozen=True)
class MappingEntry:
    """One CSV column assigned to one target field."""
    csv_column: str
    field: TargetField


@dataclass(frozen=True)
class ColumnMapping:
    """
    Ordered, immutable set of column -> field assignments.

    A column holds at most one entry (editing is upsert-by-column).
    A field may be claimed by several columns: lookups by field return the
    first entry, while row transformation applies entries in order so the
    last one wins.
    """
    entries: tuple[MappingEntry, ...] = dataclass_field(default_factory=tuple)

    @classmethod
    def from_pairs(cls, pairs) -> "ColumnMapping":
        """Build from (csv_column, field) pairs, applying upsert semantics."""
        mapping = cls()
        for csv_column, target in pairs:
            mapping = mapping.with_column(csv_column, TargetField(target))
        return mapping

    def with_column(self, csv_column: str, target: Optional[TargetField]) -> "ColumnMapping":
        """
        Return a new mapping with csv_column assigned to target.

        The previous entry for the column (if any) is dropped; the new one
        is appended. target=None just removes the column.
        """
        kept = tuple(e for e in self.entries if e.csv_column != csv_column)
        if target is None:
            return ColumnMapping(kept)
        return ColumnMapping(kept + (MappingEntry(csv_column, target),))

    def field_for(self, csv_column: str) -> Optional[TargetField]:
        for entry in self.entries:
            if entry.csv_column == csv_column:
                return entry.field
        return None

    def column_for(self, target: TargetField) -> Optional[str]:
        """First column mapped to target, or None."""
        for entry in self.entries:
            if entry.field == target:
                return entry.csv_column
        return None

    def is_mapped(self, target: TargetField) -> bool:
        return self.column_for(target) is not None

    def __iter__(self) -> Iterator[MappingEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


# ===================
# API SCHEMAS
# ===================

class TargetFieldInfo(BaseSchema):
    """Target field as offered in the mapping editor."""
    key: TargetField
    label: str
    required: bool


class MappingEntrySchema(BaseSchema):
    """Serialized mapping entry."""
    csv_column: str = Field(..., description="Header in the uploaded file")
    field: TargetField = Field(..., description="Target user attribute")


class ColumnMappingUpdate(BaseSchema):
    """
    Assign one CSV column to a target field.

    field=None clears the column ("do not map").
    """
    csv_column: str = Field(..., min_length=1, description="Header in the uploaded file")
    field: Optional[TargetField] = Field(None, description="Target field, or null to unmap")


class CommitSummary(BaseSchema):
    """Aggregate outcome of a batch commit."""
    succeeded: int = Field(0, ge=0)
    failed: int = Field(0, ge=0)


class ImportSessionResponse(BaseSchema):
    """Everything a client needs to render the current import step."""
    session_id: str
    state: WorkflowState
    filename: Optional[str] = None
    headers: list[str] = Field(default_factory=list)
    row_count: int = 0
    mapping: list[MappingEntrySchema] = Field(default_factory=list)
    mapping_errors: list[str] = Field(default_factory=list)
    data_errors: list[str] = Field(default_factory=list)
    last_error: Optional[str] = None
    progress: int = Field(0, ge=0, le=100)
    result: Optional[CommitSummary] = None
    # WorkflowEvent values the client may trigger next
    actions: list[str] = Field(default_factory=list)
    target_fields: list[TargetFieldInfo] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


def target_field_catalog() -> list[TargetFieldInfo]:
    """Target fields in declaration order, for the mapping editor."""
    return [
        TargetFieldInfo(key=f, label=f.label, required=f.required)
        for f in TargetField
    ]
