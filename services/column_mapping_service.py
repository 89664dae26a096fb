"""
Column mapping logic for user imports.

Proposes a column -> target field mapping from header text, checks that
required fields are mapped, and projects header-keyed rows onto target
fields.
"""

from typing import Sequence
import structlog

from models.user_import import ColumnMapping, MappingEntry, TargetField
from parsers.csv_parser import CSVRow

logger = structlog.get_logger(__name__)

# Row keyed by target field, after mapping
MappedRow = dict[TargetField, str]

REQUIRED_FIELD_MESSAGE = 'The field "{label}" is required and must be mapped'


def auto_map(
    headers: Sequence[str],
    fields: Sequence[TargetField] = tuple(TargetField),
) -> ColumnMapping:
    """
    Propose a mapping from header text alone.

    For each field in declaration order, picks the first header whose
    lower-cased text contains the field key or its label. A header already
    proposed for an earlier field stays with that field; the later field
    is left unmapped.

    Args:
        headers: CSV headers in file order
        fields: Target fields in declaration order

    Returns:
        New ColumnMapping (possibly empty)
    """
    entries: list[MappingEntry] = []
    claimed: set[str] = set()

    for target in fields:
        match = _first_matching_header(headers, target)
        if match is None or match in claimed:
            continue
        entries.append(MappingEntry(csv_column=match, field=target))
        claimed.add(match)

    mapping = ColumnMapping(tuple(entries))

    logger.info(
        "auto_mapping_applied",
        header_count=len(headers),
        mapped=[(e.csv_column, e.field.value) for e in mapping],
    )

    return mapping


def validate_mapping(mapping: ColumnMapping) -> list[str]:
    """
    Check that every required field has a column.

    Returns:
        One message per missing required field, in declaration order.
        Empty list means the mapping is accepted.
    """
    errors = [
        REQUIRED_FIELD_MESSAGE.format(label=target.label)
        for target in TargetField
        if target.required and not mapping.is_mapped(target)
    ]

    if errors:
        logger.info("mapping_validation_failed", error_count=len(errors))

    return errors


def map_row(row: CSVRow, mapping: ColumnMapping) -> MappedRow:
    """
    View a header-keyed row through the mapping.

    Entries are applied in order, so when two columns map to the same
    field the later column wins. Columns missing from the row read as "".
    """
    mapped: MappedRow = {}
    for entry in mapping:
        mapped[entry.field] = row.get(entry.csv_column, "")
    return mapped


# ===================
# HELPER FUNCTIONS
# ===================

def _first_matching_header(headers: Sequence[str], target: TargetField):
    key = target.value.lower()
    label = target.label.lower()
    for header in headers:
        text = header.lower()
        if key in text or label in text:
            return header
    return None
