from fastapi import status


class AppError(Exception):
    """Base for errors that map onto an HTTP status with an `{"error": ...}` body."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InputError(AppError):
    """Malformed body or invalid phone format."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(AppError):
    """Wrong code, or a missing, malformed, forged or expired bearer token."""

    status_code = status.HTTP_401_UNAUTHORIZED


class StorageError(AppError):
    """Backend unreachable, deadline exceeded, write failure or signing failure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
