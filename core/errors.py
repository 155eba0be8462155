# core/errors.py

from typing import Optional

from fastapi import HTTPException

from core.logging_config import logger


# PostgreSQL / PostgREST error codes we translate for users
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
NOT_NULL_VIOLATION = "23502"
CHECK_VIOLATION = "23514"
NO_ROWS = "PGRST116"


class MissingCompanyScope(Exception):
    """
    Raised when a non-admin caller has no company to act in
    (an owner without a company, an inactive manager).

    Not a hard error: the app handler sends HTML clients to
    `redirect_url` and gives JSON clients a 403 carrying the same URL.
    """

    def __init__(self, message: str = "No company is linked to this account", redirect_url: str = "/dashboard"):
        super().__init__(message)
        self.message = message
        self.redirect_url = redirect_url


def extract_supabase_error(error: Exception) -> str:
    """
    Safely extract readable details from Supabase Python client errors.
    Handles:
      • PostgREST errors (APIError with .message / .code)
      • GoTrue (Auth) errors
      • Generic Python exceptions
    """
    message = getattr(error, "message", None)
    if message:
        return str(message)

    if getattr(error, "args", None):
        return str(error.args[0])

    return str(error) or "Unknown Supabase error"


def extract_error_code(error: Exception) -> Optional[str]:
    code = getattr(error, "code", None)
    return str(code) if code is not None else None


def handle_supabase_error(error: Exception, operation: str = "Database operation", status_code: int = 500) -> HTTPException:
    """
    Handle Supabase errors with consistent formatting.
    Returns HTTPException (doesn't raise) so caller can customize or re-raise.

    Args:
        error: The exception that occurred
        operation: Description of what failed (e.g., "Failed to create car")
        status_code: HTTP status code for errors we cannot classify

    Returns:
        HTTPException with a user-facing message; internals are only logged.
    """
    if isinstance(error, HTTPException):
        return error

    error_detail = extract_supabase_error(error)
    code = extract_error_code(error)
    logger.error(f"{operation}: [{code or '-'}] {error_detail}")

    error_lower = error_detail.lower()

    if code == UNIQUE_VIOLATION or "duplicate" in error_lower or "unique constraint" in error_lower:
        return HTTPException(status_code=409, detail=f"{operation}: {_describe_duplicate(error_lower)}")

    if code == FOREIGN_KEY_VIOLATION or "violates foreign key" in error_lower:
        return HTTPException(
            status_code=409,
            detail=f"{operation}: Record is in use, cannot delete or reference it",
        )

    if code == NOT_NULL_VIOLATION:
        return HTTPException(status_code=400, detail=f"{operation}: Required field is missing")

    if code == CHECK_VIOLATION:
        return HTTPException(
            status_code=400,
            detail=f"{operation}: Data violates system rules (e.g. invalid date range or negative price)",
        )

    if code == NO_ROWS or "not found" in error_lower:
        return HTTPException(status_code=404, detail=f"{operation}: Resource not found")

    return HTTPException(status_code=status_code, detail=f"{operation} failed")


def _describe_duplicate(error_lower: str) -> str:
    if "email" in error_lower:
        return "A user with this email already exists"
    if "license_plate" in error_lower:
        return "A car with this license plate already exists"
    if "vin" in error_lower:
        return "A car with this VIN already exists"
    return "Record already exists"
