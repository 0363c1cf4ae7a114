"""
Custom exceptions for the governance backend.

Provides a hierarchy of exceptions carrying HTTP status codes so that
services can raise business errors and the API layer can map them
without knowing which rule was broken.
"""
from typing import Optional


class GovernanceError(Exception):
    """Base exception for all governance errors."""

    def __init__(self, message: str, code: int = 500):
        super().__init__(message)
        self.message = message
        self.code = code

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "success": False,
            "message": self.message,
        }


# ============================================
# 4xx Client Errors
# ============================================

class ValidationError(GovernanceError):
    """400 Bad Request - Malformed or out-of-range input."""

    def __init__(self, message: str = "Invalid request data", field: Optional[str] = None):
        self.field = field
        full_message = f"'{field}': {message}" if field else message
        super().__init__(full_message, code=400)

    def to_dict(self) -> dict:
        return {
            "name": "Validation Error",
            "message": self.message,
        }


class BadRequestError(GovernanceError):
    """400 Bad Request - A business rule rejected the request."""

    def __init__(self, message: str = "Bad request"):
        super().__init__(message, code=400)


class NotFoundError(GovernanceError):
    """404 Not Found - Referenced member, DAO, proposal or quest is absent."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, code=404)


class ConflictError(GovernanceError):
    """Duplicate join, duplicate vote or double conclusion.

    Surfaced as 400 to match the current API contract; 409 is reserved.
    """

    def __init__(self, message: str = "Resource conflict"):
        super().__init__(message, code=400)


# ============================================
# 5xx Upstream Errors
# ============================================

class UpstreamError(GovernanceError):
    """500 - A collaborator (store, reward dispatcher, archive) failed."""

    def __init__(self, message: str = "Upstream service failed"):
        super().__init__(message, code=500)


class StoreError(UpstreamError):
    """The backing store rejected or failed an operation."""

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message)


class DuplicateRecordError(StoreError):
    """An insert collided with a unique key."""

    def __init__(self, table: str = "", message: str = ""):
        self.table = table
        super().__init__(message or f"Duplicate record in '{table}'")


class RewardDispatchError(UpstreamError):
    """The merit distribution endpoint failed."""

    def __init__(self, message: str = "Merit distribution failed", status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ArchiveError(UpstreamError):
    """Writing a proposal to cold storage failed."""
