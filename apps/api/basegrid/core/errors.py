"""
Domain errors.

Services raise these at the point of detection; the HTTP layer translates
them into responses in exactly one place (see basegrid.main).
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    NOT_AUTHENTICATED = "not_authenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    CONFLICT = "conflict"
    INVALID_STATE = "invalid_state"


HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.NOT_AUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID_STATE: 409,
}


class DomainError(Exception):
    """Base error carrying a stable kind, a human-readable message and optional details."""

    kind: ErrorKind = ErrorKind.BAD_REQUEST
    default_message = "Request failed"

    def __init__(self, message: str | None = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"detail": self.message, "code": self.kind.value}
        if self.details is not None:
            body["details"] = self.details
        return body


class NotAuthenticatedError(DomainError):
    kind = ErrorKind.NOT_AUTHENTICATED
    default_message = "Not authenticated"


class ForbiddenError(DomainError):
    kind = ErrorKind.FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(DomainError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class BadRequestError(DomainError):
    kind = ErrorKind.BAD_REQUEST
    default_message = "Bad request"


class ConflictError(DomainError):
    kind = ErrorKind.CONFLICT
    default_message = "Conflict"


class InvalidStateError(DomainError):
    """Lifecycle transition not allowed from the entity's current trash state."""
    kind = ErrorKind.INVALID_STATE
    default_message = "Invalid state"


class TrashedError(ConflictError):
    """Mutation attempted on an entity (or descendant of one) that is in the trash."""
    default_message = "In trash, restore first"
