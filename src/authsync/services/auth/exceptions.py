"""Custom exceptions for authentication and user sync."""


class AuthSyncError(Exception):
    """
    Base class for errors rendered to API callers.

    Attributes:
        status_code: HTTP status used when the error reaches the client
        message: Public message placed in the `error` field of the response
    """

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequestError(AuthSyncError):
    """Raised when caller input is malformed (missing or empty fields)."""

    status_code = 400
    default_message = "Invalid request"


class InvalidTokenError(AuthSyncError):
    """Raised when an identity token fails verification for any reason."""

    status_code = 401
    default_message = "Invalid Token"


class UnauthenticatedError(AuthSyncError):
    """Raised when a protected request carries no usable credentials."""

    status_code = 401
    default_message = "Unauthorized"


class UserNotFoundError(AuthSyncError):
    """Raised when a verified principal has no local user record."""

    status_code = 404
    default_message = "User not found"


class StoreFailureError(AuthSyncError):
    """Raised when the user store cannot complete an operation."""

    status_code = 500
    default_message = "Internal server error"


class UserConflictError(Exception):
    """Raised by the store when an insert violates a uniqueness constraint."""

    pass
