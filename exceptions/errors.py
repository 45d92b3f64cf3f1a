"""
Application errors.

Services raise AppError subclasses; routes turn them into the JSON error
body with to_dict(). The bulk upload pipeline is the exception: it reports
failures inside UploadOutcome and raises nothing.
"""

from typing import Optional, Any
from datetime import datetime, timezone

from utils.store_errors import error_code, error_message


class AppError(Exception):
    """
    Base for every error that maps to an HTTP response.

    Attributes:
        code: Machine-readable code, e.g. "MAPPING_NOT_FOUND"
        message: Text shown to the user
        status_code: HTTP status
        details: Extra context for the client
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
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Body of the JSON error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """404."""

    def __init__(self, resource: str, identifier: str, code: str):
        super().__init__(
            code=code,
            message=f"{resource} {identifier} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """422."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(code=code, message=message, status_code=422, details=details)


class ConflictError(AppError):
    """409."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(code=code, message=message, status_code=409, details=details)


class DatabaseError(AppError):
    """
    A store call failed (500).

    details carries the operation and, for PostgREST errors, the store's own
    error code.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        store_code: Optional[str] = None
    ):
        details: dict[str, Any] = {"operation": operation}
        if store_code:
            details["store_code"] = store_code
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details=details
        )

    @classmethod
    def from_exception(cls, operation: str, exc: Exception) -> "DatabaseError":
        return cls(operation, error_message(exc), store_code=error_code(exc))


# ===================
# MAPPING ERRORS
# ===================

class MappingNotFoundError(NotFoundError):
    """Channel SKU mapping not found."""

    def __init__(self, mapping_id: int):
        super().__init__(
            resource="Channel SKU mapping",
            identifier=str(mapping_id),
            code="MAPPING_NOT_FOUND"
        )


class MappingExistsError(ConflictError):
    """A mapping for this channel SKU on this channel already exists."""

    def __init__(self, channel_sku: str, channel_name: str):
        super().__init__(
            code="MAPPING_EXISTS",
            message=f"Mapping for {channel_sku} on {channel_name} already exists",
            details={"channel_sku": channel_sku, "channel_name": channel_name}
        )


# ===================
# CSV UPLOAD ERRORS
# ===================

class CSVParseError(ValidationError):
    """CSV file could not be read."""

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


class EmptyFileError(CSVParseError):
    """File has no header plus data row."""

    def __init__(self, line_count: int = 0):
        super().__init__(
            code="CSV_EMPTY_FILE",
            message="File must contain at least a header row and one data row",
            details={"non_empty_lines": line_count}
        )


class InvalidFileTypeError(ValidationError):
    """Uploaded file is not a CSV."""

    def __init__(self, filename: Optional[str]):
        super().__init__(
            code="INVALID_FILE_TYPE",
            message="Please select a CSV file",
            details={"filename": filename}
        )
