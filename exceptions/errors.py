"""
Custom exception classes for the application.

Per-row import problems are not exceptions; they surface as rows with
status "error". Everything here is batch- or request-level.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "PROFILE_NOT_FOUND")
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
    """Conflict with current state (409)."""

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
# MAPPING PROFILE ERRORS
# ===================

class ProfileNotFoundError(NotFoundError):
    """Mapping profile not found."""

    def __init__(self, profile_id: str):
        super().__init__(
            resource="Import profile",
            identifier=str(profile_id),
            code="PROFILE_NOT_FOUND"
        )


class ProfileLoadError(ValidationError):
    """Stored mapping rules have a shape we cannot read."""

    def __init__(self, reason: str, details: Optional[dict] = None):
        super().__init__(
            code="PROFILE_LOAD_ERROR",
            message=f"Mapping profile could not be loaded: {reason}",
            details=details
        )


# ===================
# SPREADSHEET / MAPPING ERRORS
# ===================

class InvalidSpreadsheetError(ValidationError):
    """Uploaded spreadsheet could not be read."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="INVALID_SPREADSHEET",
            message=message,
            details=details
        )


class MappingValidationError(ValidationError):
    """Required target fields are not mapped to a column."""

    def __init__(self, missing: list[str]):
        super().__init__(
            code="MAPPING_MISSING_REQUIRED",
            message=f"Missing required fields: {', '.join(missing)}",
            details={"missing": missing}
        )


# ===================
# PREVIEW / EXECUTE ERRORS
# ===================

class ImportTooLargeError(AppError):
    """Row count exceeds the configured limit (413)."""

    def __init__(self, row_count: int, limit: int):
        super().__init__(
            code="IMPORT_TOO_LARGE",
            message=f"Import has {row_count} rows; the limit is {limit}",
            status_code=413,
            details={"rows": row_count, "limit": limit}
        )


class ImportConfirmationRequiredError(ConflictError):
    """Execute called without explicit confirmation."""

    def __init__(self):
        super().__init__(
            code="IMPORT_CONFIRMATION_REQUIRED",
            message="Applying an import changes the catalog; resend with confirm=true"
        )


class NoEligibleRowsError(ValidationError):
    """Nothing left to apply after skips and errors are removed."""

    def __init__(self, total_rows: int):
        super().__init__(
            code="IMPORT_NO_ELIGIBLE_ROWS",
            message="No rows are eligible to import",
            details={"rows_received": total_rows}
        )


class ExecutionTransactionError(AppError):
    """Applying the batch failed; the whole transaction was rolled back."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="IMPORT_EXECUTION_FAILED",
            message=f"Import rolled back: {message}",
            status_code=500,
            details={"rolled_back": True, **(details or {})}
        )
