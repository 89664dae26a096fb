"""
Per-row validation of mapped import data.

Only mapped fields are checked. Row numbers match the line numbers of the
original file (index + 2, header on line 1).

Role values are checked against the four canonical names only. The row
transformer accepts a wider synonym table (e.g. "profesor"), so a value
it would resolve can still be rejected here. This mismatch is kept as is.
"""

import re
import structlog

from models.user import UserRole
from models.user_import import ColumnMapping, TargetField
from parsers.csv_parser import TabularDocument

logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

CANONICAL_ROLES: tuple[str, ...] = tuple(role.value for role in UserRole)

# Header occupies line 1, first data row is line 2
ROW_NUMBER_OFFSET = 2


def validate_data(document: TabularDocument, mapping: ColumnMapping) -> list[str]:
    """
    Validate every row of the document against the mapped fields.

    Rules:
        - email (if mapped): must look like local@domain.tld; empty is invalid
        - role (if mapped): non-empty values must be a canonical role,
          compared case-insensitively

    Args:
        document: Parsed CSV
        mapping: Current column mapping

    Returns:
        Error messages in row order, email before role within a row
    """
    email_column = mapping.column_for(TargetField.EMAIL)
    role_column = mapping.column_for(TargetField.ROLE)

    errors: list[str] = []

    for index, row in enumerate(document.rows):
        row_number = index + ROW_NUMBER_OFFSET

        if email_column is not None:
            email = row.get(email_column, "")
            if not is_valid_email(email):
                errors.append(f'Row {row_number}: invalid email "{email}"')

        if role_column is not None:
            role = row.get(role_column, "").lower()
            if role and role not in CANONICAL_ROLES:
                errors.append(
                    f'Row {row_number}: invalid role "{role}". '
                    f'Allowed values: {", ".join(CANONICAL_ROLES)}'
                )

    logger.info(
        "import_data_validated",
        row_count=document.row_count,
        error_count=len(errors)
    )

    return errors


def is_valid_email(value: str) -> bool:
    """Basic shape check: no whitespace, one @, a dot in the domain."""
    return bool(value) and EMAIL_PATTERN.match(value) is not None
