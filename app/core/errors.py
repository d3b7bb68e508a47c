"""
Typed error hierarchy for the auth core.

Every failure the core can produce is one of these classes, so callers
branch on the type instead of matching message strings. The HTTP layer
(app.main) maps ``status_code`` / ``code`` onto the response; nothing in
here knows about FastAPI.
"""
from typing import Any, Awaitable, TypeVar

import anyio

from app.core.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class AppError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"success": False, "code": self.code, "message": self.message}


# ── Input ─────────────────────────────────────────────────────────────
class ValidationError(AppError):
    """Malformed or policy-violating input. Carries every broken rule."""

    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Validation failed"

    def __init__(self, errors: list[dict[str, str]], message: str | None = None):
        self.errors = errors
        super().__init__(message or (errors[0]["message"] if errors else None))

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["errors"] = self.errors
        return body


# ── Business rules ────────────────────────────────────────────────────
class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
    message = "User already exists with this email"


class InvalidCredentialsError(AppError):
    # Same text for unknown email and wrong password
    status_code = 401
    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"


class AuthenticationError(AppError):
    status_code = 401
    code = "UNAUTHENTICATED"
    message = "Invalid or missing token"


class PendingApprovalError(AppError):
    status_code = 403
    code = "PENDING_APPROVAL"
    message = "Your account is pending approval"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Resource not found"


class SamePasswordError(AppError):
    status_code = 400
    code = "SAME_PASSWORD"
    message = "New password must be different from old password"


# ── OTP ───────────────────────────────────────────────────────────────
class OtpNotFoundError(NotFoundError):
    status_code = 400
    code = "OTP_NOT_FOUND"
    message = "OTP not found or already used. Please request a new one."


class InvalidCodeError(AppError):
    status_code = 400
    code = "INVALID_OTP"
    message = "Invalid OTP"


class ExpiredError(AppError):
    status_code = 400
    code = "OTP_EXPIRED"
    message = "OTP has expired. Please request a new one."


# ── Gate ──────────────────────────────────────────────────────────────
class TooManyRequestsError(AppError):
    status_code = 429
    code = "TOO_MANY_REQUESTS"
    message = "Too many requests from this IP, please try again later"

    def __init__(self, retry_after: int, limit: int | None = None, message: str | None = None):
        self.retry_after = retry_after
        self.limit = limit
        super().__init__(message)


# ── Collaborators (DB, email) ─────────────────────────────────────────
class DependencyFailureError(AppError):
    status_code = 503
    code = "DEPENDENCY_FAILURE"
    message = "A required service is unavailable. Please try again later."


class DependencyTimeoutError(DependencyFailureError):
    status_code = 504
    code = "DEPENDENCY_TIMEOUT"
    message = "A required service did not respond in time. Please try again later."


async def call_dependency(aw: Awaitable[T], *, timeout: float, name: str) -> T:
    """
    Await a store / email call, bounded by ``timeout`` seconds.

    On timeout the call is cancelled and DependencyTimeoutError is raised;
    every other error (including our own AppError subclasses) passes through.
    """
    try:
        with anyio.fail_after(timeout):
            return await aw
    except TimeoutError as exc:
        logger.warning("%s did not respond within %ss", name, timeout)
        raise DependencyTimeoutError() from exc
