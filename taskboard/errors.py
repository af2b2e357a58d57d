"""Error taxonomy for Taskboard operations.

Services raise these; the API layer maps each class to a status code and a
structured JSON body. Store/transport failures from SQLAlchemy are mapped to
the transient classification at the same boundary.
"""

from typing import Any


class TaskboardError(Exception):
    """Base class for all domain errors."""

    code = "error"
    status_code = 400

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "detail": self.message, **self.details}


class ValidationError(TaskboardError):
    """Malformed input, rejected before touching the store."""

    code = "validation_error"
    status_code = 400

    def __init__(self, field: str, message: str):
        super().__init__(message, field=field)
        self.field = field


class ForbiddenError(TaskboardError):
    """The caller's role lacks the required capability."""

    code = "forbidden"
    status_code = 403


class NotFoundError(TaskboardError):
    """No backing record for the requested id."""

    code = "not_found"
    status_code = 404


class ConflictError(TaskboardError):
    """The request conflicts with the current state of a record."""

    code = "conflict"
    status_code = 409


class LinkUnavailableError(TaskboardError):
    """An invitation or share link can no longer be redeemed."""

    code = "link_unavailable"
    status_code = 410

    INACTIVE = "inactive"
    EXPIRED = "expired"
    LIMIT_EXCEEDED = "limit_exceeded"

    def __init__(self, reason: str, message: str):
        super().__init__(message, reason=reason)
        self.reason = reason


class StoreError(TaskboardError):
    """Transient document-store or network failure. Safe to retry."""

    code = "store_unavailable"
    status_code = 503

    def __init__(self, message: str = "Document store unavailable"):
        super().__init__(message, retryable=True)
