"""Application error taxonomy rendered as the `{success: false, message}` envelope."""

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base class for errors surfaced to API callers."""

    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int = None):
        super().__init__(status_code=status_code or self.default_status, detail=message)
        self.message = message


class ValidationError(AppError):
    """Missing, empty or malformed input."""
    default_status = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    """Unknown user, message, notification or agreement."""
    default_status = status.HTTP_404_NOT_FOUND


class ForbiddenError(AppError):
    """Actor is not allowed to perform the mutation on the target."""
    default_status = status.HTTP_403_FORBIDDEN


class ConflictError(AppError):
    """Duplicate action, e.g. accepting an agreement twice."""
    default_status = status.HTTP_409_CONFLICT


class InternalError(AppError):
    """Store or transport failure."""
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Internal server error", status_code: int = None):
        super().__init__(message, status_code)
