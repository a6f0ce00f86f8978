from __future__ import annotations

from typing import Optional, Sequence


class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 400

    def __init__(self, message: str = "", *, errors: Optional[Sequence[dict]] = None):
        super().__init__(message)
        self.message = message
        self.errors = list(errors or [])


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    status_code = 400


class AuthenticationError(DomainError):
    """Raised when credentials or tokens are missing, invalid or expired."""

    status_code = 401


class InactiveAccountError(AuthenticationError):
    """Valid credentials for an account that has been deactivated."""

    def __init__(self, message: str = "Account is inactive"):
        super().__init__(message)


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""

    status_code = 404


class ConflictError(DomainError):
    """Raised when a write collides with existing data."""

    status_code = 409


class DuplicateKeyError(ConflictError):
    """A unique key rejected an insert/update at the storage layer.

    `key` names the violated index so callers can tell collisions apart.
    """

    def __init__(self, message: str = "Duplicate entry", *, key: str = ""):
        super().__init__(message)
        self.key = key


class CapacityExceededError(ValidationError):
    def __init__(self, *, current: int, capacity: int):
        super().__init__(f"Class capacity exceeded. Current: {current}, Available: {capacity - current}")
        self.current = current
        self.capacity = capacity


class ServiceUnavailableError(DomainError):
    """Raised when an external collaborator (e.g. face recognition) fails."""

    status_code = 503