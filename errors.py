# backend/errors.py
"""
Application error taxonomy.

Every error carries the HTTP status and the message shown to the client.
Handlers raise these; create_app() renders them as {"error": message}.
"""
from __future__ import annotations

__all__ = [
    "AppError",
    "ValidationError",
    "NotFoundError",
    "InvalidOtpError",
    "AuthenticationError",
    "ExpiredError",
    "MalformedError",
    "IncompleteClaimsError",
    "AuthorizationError",
    "ConflictError",
    "DependencyError",
]


class AppError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class ValidationError(AppError):
    status_code = 400
    message = "Invalid request"


class NotFoundError(AppError):
    status_code = 404
    message = "Account not found"


class InvalidOtpError(AppError):
    # Same text for unknown account, wrong code and expired code.
    status_code = 400
    message = "Invalid or expired OTP"

    def __init__(self):
        super().__init__()


class AuthenticationError(AppError):
    status_code = 401
    message = "Authentication failed"


class ExpiredError(AuthenticationError):
    message = "Token expired. Please log in again."


class MalformedError(AuthenticationError):
    message = "Token is not valid."


class IncompleteClaimsError(AuthenticationError):
    message = "Token payload is missing required fields (id, email, or role)."


class AuthorizationError(AppError):
    status_code = 403
    message = "Access denied."


class ConflictError(AppError):
    status_code = 409
    message = "Conflict"


class DependencyError(AppError):
    status_code = 502
    message = "Upstream service unavailable. Please try again."
