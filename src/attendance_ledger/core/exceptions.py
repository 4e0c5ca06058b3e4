class DomainError(Exception):
    """Base exception for business rule violations.

    `status_code` is what the HTTP layer answers with.
    """

    status_code = 400


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403


class LocationNotAllowedError(AuthorizationError):
    """Raised when a check-in comes from an origin outside the allowed locations."""


class NotFoundError(DomainError):
    """Raised when a record the operation depends on does not exist."""

    status_code = 404


class ConflictError(DomainError):
    """Raised when the requested change collides with existing state."""

    status_code = 409


class TransientStoreError(DomainError):
    """Raised when the store keeps rejecting a write after the internal retry."""

    status_code = 503


class BatchJobFailure(DomainError):
    """Raised when the regularization job exhausted its attempts."""

    status_code = 500
