"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DuplicateError,
    DatabaseError,

    # Users
    UserEmailExistsError,

    # CSV parser
    CSVParseError,
    EmptyDocumentError,
    UnsupportedFileTypeError,

    # Import workflow
    MappingValidationError,
    DataValidationError,
    CommitBatchError,
    InvalidTransitionError,
    ImportSessionNotFoundError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DuplicateError",
    "DatabaseError",

    # Users
    "UserEmailExistsError",

    # CSV parser
    "CSVParseError",
    "EmptyDocumentError",
    "UnsupportedFileTypeError",

    # Import workflow
    "MappingValidationError",
    "DataValidationError",
    "CommitBatchError",
    "InvalidTransitionError",
    "ImportSessionNotFoundError",
]
