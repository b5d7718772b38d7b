"""Error handling utilities."""

from typing import Any, Optional


class TaskboardError(Exception):
    """Base exception for the taskboard backend."""
    status_code = 500
    public_message = "Internal server error"


class ConfigurationError(TaskboardError):
    """Required configuration is missing or invalid."""
    pass


class UnauthenticatedError(TaskboardError):
    """Request carries no valid session."""
    status_code = 401
    public_message = "Unauthorized"


class BadRequestError(TaskboardError):
    """Request body could not be read as JSON."""
    status_code = 400
    public_message = "Malformed request body"


class ValidationFailedError(TaskboardError):
    """Request fields failed schema validation."""
    status_code = 422
    public_message = "Validation failed"

    def __init__(self, errors: Optional[list[dict[str, Any]]] = None):
        super().__init__(self.public_message)
        self.errors = errors or []


class NotFoundError(TaskboardError):
    """Record does not exist or is not owned by the requester."""
    status_code = 404
    public_message = "Task not found"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)
        if message:
            self.public_message = message


class SupabaseError(TaskboardError):
    """Supabase operation error."""
    pass
