"""
Application errors.

Every error carries a human readable message and the HTTP status it maps to.
The API layer turns them into ``{"error": <message>, ...extra}`` bodies.
"""
from typing import Any, Dict, List


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, **self.extra}


class AuthenticationError(AppError):
    """Missing, invalid or expired credentials."""
    status_code = 401


class AuthorizationError(AppError):
    """Wrong role, or wrong exam password."""
    status_code = 403


class ForbiddenError(AuthorizationError):
    pass


class NotFoundError(AppError):
    status_code = 404


class ValidationError(AppError):
    status_code = 400


class BulkImportError(ValidationError):
    """Row level failures of a bulk import. Nothing has been written."""

    def __init__(self, total_rows: int, row_errors: List[Dict[str, Any]]):
        super().__init__(
            f"Validation failed for {len(row_errors)} of {total_rows} row(s). No records were imported.",
            total_rows=total_rows,
            error_count=len(row_errors),
            details=row_errors,
        )


class ConflictError(AppError):
    status_code = 409


class UnexpectedError(AppError):
    status_code = 500
