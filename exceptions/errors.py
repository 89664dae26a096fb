"""
Custom exception classes for the application.

Every error carries a code, an HTTP status and details so routes can
return the standard error envelope.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "IMPORT_SESSION_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DuplicateError(ConflictError):
    """Duplicate resource (409)."""

    def __init__(
        self,
        resource: str,
        field: str,
        value: str
    ):
        super().__init__(
            code=f"{resource.upper()}_{field.upper()}_EXISTS",
            message=f"{resource} with this {field} already exists",
            details={field: value}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# USER ERRORS
# ===================

class UserEmailExistsError(DuplicateError):
    """A user with this email already exists."""

    def __init__(self, email: str):
        super().__init__(
            resource="User",
            field="email",
            value=email
        )


# ===================
# CSV PARSER ERRORS
# ===================

class CSVParseError(ValidationError):
    """Uploaded file could not be turned into a tabular document."""

    def __init__(
        self,
        message: str,
        code: str = "CSV_PARSE_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details=details
        )


class EmptyDocumentError(CSVParseError):
    """No non-blank line left after discarding blank lines."""

    def __init__(self, filename: Optional[str] = None):
        super().__init__(
            code="CSV_EMPTY",
            message="The CSV file is empty",
            details={"filename": filename} if filename else None
        )


class UnsupportedFileTypeError(CSVParseError):
    """File name does not end in .csv."""

    def __init__(self, filename: Optional[str]):
        super().__init__(
            code="CSV_UNSUPPORTED_FILE_TYPE",
            message="Only CSV files are allowed",
            details={"filename": filename, "expected_extension": ".csv"}
        )


# ===================
# IMPORT WORKFLOW ERRORS
# ===================

class MappingValidationError(ValidationError):
    """Required target fields are not mapped."""

    def __init__(self, errors: list[str]):
        super().__init__(
            code="IMPORT_MAPPING_INVALID",
            message=f"Column mapping is incomplete ({len(errors)} errors)",
            details={"errors": errors}
        )


class DataValidationError(ValidationError):
    """Mapped values failed per-row checks."""

    def __init__(self, errors: list[str], mapping_errors: Optional[list[str]] = None):
        details = {"errors": errors}
        if mapping_errors:
            details["mapping_errors"] = mapping_errors
        super().__init__(
            code="IMPORT_DATA_INVALID",
            message=f"Import data failed validation ({len(errors)} errors)",
            details=details
        )


class CommitBatchError(AppError):
    """The whole batch failed before any user could be submitted (503)."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="IMPORT_COMMIT_FAILED",
            message=f"Error during import: {message}",
            status_code=503,
            details=details
        )


class InvalidTransitionError(ConflictError):
    """Operation not allowed in the session's current state."""

    def __init__(self, current_state: str, event: str):
        super().__init__(
            code="INVALID_IMPORT_TRANSITION",
            message=f"Cannot {event} while import is in {current_state}",
            details={
                "current_state": current_state,
                "event": event,
            }
        )


class ImportSessionNotFoundError(NotFoundError):
    """Import session unknown or expired."""

    def __init__(self, session_id: str):
        super().__init__(
            resource="Import session",
            identifier=session_id,
            code="IMPORT_SESSION_NOT_FOUND"
        )
