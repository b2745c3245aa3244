from typing import Optional

from fastapi import HTTPException


class AppError(HTTPException):
    """HTTPException with a per-class default status and message."""

    status = 500
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(status_code=self.status, detail=message or self.default_message)

    @property
    def message(self) -> str:
        return self.detail


class ValidationError(AppError):
    status = 400
    default_message = "Validation failed"


class Unauthorized(AppError):
    status = 401
    default_message = "Access denied. No token provided."


class InvalidToken(Unauthorized):
    default_message = "Invalid token."


class ExpiredToken(Unauthorized):
    default_message = "Token expired."


class Forbidden(AppError):
    status = 403
    default_message = "Forbidden"


class NotFound(AppError):
    status = 404
    default_message = "Not found"


class NotInFavorites(NotFound):
    default_message = "Product not in favorites"


class Conflict(AppError):
    status = 409
    default_message = "Conflict"


class AlreadyFavorited(Conflict):
    default_message = "Product already in favorites"


class Internal(AppError):
    status = 500
