class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 400


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    status_code = 400


class NotFoundError(DomainError):
    """Raised when a branch, shift, request or user does not exist."""

    status_code = 404


class ConflictError(DomainError):
    """Raised when the current state does not allow the operation."""

    status_code = 409


class ForbiddenError(DomainError):
    """Raised when the acting user is not allowed to perform the action."""

    status_code = 403


class ExternalDependencyError(DomainError):
    """Raised when the ERP (or another remote system) call fails.

    The caller may retry the whole operation; no local state was changed.
    """

    status_code = 502
