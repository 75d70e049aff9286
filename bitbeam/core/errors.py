from __future__ import annotations


class BitBeamError(Exception):
    """Base for every failure the service reports to a caller.

    ``public_message`` is what the client sees; the exception text and
    ``__cause__`` are for the operator log only.
    """

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str | None = None, *, operation: str | None = None, identifier: str | None = None):
        super().__init__(message or self.public_message)
        self.operation = operation
        self.identifier = identifier


class ValidationError(BitBeamError):
    status_code = 400
    public_message = "Invalid request"


class PayloadTooLargeError(ValidationError):
    status_code = 413
    public_message = "Upload too large"


class AuthorizationError(BitBeamError):
    status_code = 401
    public_message = "Invalid or missing key"


class ForbiddenError(BitBeamError):
    status_code = 403
    public_message = "Forbidden"


class NotFoundError(BitBeamError):
    status_code = 404
    public_message = "File not found"


class ConflictError(BitBeamError):
    status_code = 409
    public_message = "Username already taken"


class StorageError(BitBeamError):
    public_message = "File storage error"


class PersistenceError(BitBeamError):
    public_message = "Database error"
