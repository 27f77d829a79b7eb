"""
Typed application errors.

The auth core raises these instead of HTTP exceptions; ``tasklane.main``
renders them into the ``{"error": {...}}`` response shape. Messages are fixed
per kind so that no internal reason (expired vs. revoked token, unknown vs.
wrong password) reaches the caller.
"""

from __future__ import annotations


class AppError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "status": self.status_code,
            }
        }


class BadRequest(AppError):
    status_code = 400
    code = "BAD_REQUEST"
    message = "Bad request"


class InvalidCredentials(AppError):
    status_code = 401
    code = "INVALID_CREDENTIALS"
    message = "Invalid credentials"


class Unauthorized(AppError):
    status_code = 401
    code = "UNAUTHORIZED"
    message = "Invalid or expired token"


class Forbidden(AppError):
    status_code = 403
    code = "FORBIDDEN"
    message = "Forbidden"


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Resource not found"


class Conflict(AppError):
    status_code = 409
    code = "CONFLICT"
    message = "Resource already exists"
