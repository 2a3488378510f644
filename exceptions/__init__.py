"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DatabaseError,

    # Mapping profiles
    ProfileNotFoundError,
    ProfileLoadError,

    # Spreadsheet / mapping
    InvalidSpreadsheetError,
    MappingValidationError,

    # Preview / execute
    ImportTooLargeError,
    ImportConfirmationRequiredError,
    NoEligibleRowsError,
    ExecutionTransactionError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DatabaseError",

    # Mapping profiles
    "ProfileNotFoundError",
    "ProfileLoadError",

    # Spreadsheet / mapping
    "InvalidSpreadsheetError",
    "MappingValidationError",

    # Preview / execute
    "ImportTooLargeError",
    "ImportConfirmationRequiredError",
    "NoEligibleRowsError",
    "ExecutionTransactionError",
]
