"""
Error taxonomy & HTTP mapping.

Every failure a service can report is a `ServiceError` subclass
carrying an HTTP status and a stable machine-readable code.  The
handlers registered here turn them into

    {"ok": false, "error": "<code>", "message": "<text>"}

so responses never expose stack traces or internal identifiers.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

_STATUS_TO_CODE = {
    400: "validation_error",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    500: "server_error",
}


class ServiceError(Exception):
    """Base class for service-layer failures mapped to HTTP responses."""

    status_code: int = 400
    error_code: str = "validation_error"
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# ── 400 ──────────────────────────────────────────────────────────────
class ValidationError(ServiceError):
    status_code = 400
    error_code = "validation_error"
    default_message = "Invalid request"


class WeakPassword(ValidationError):
    error_code = "weak_password"
    default_message = "Password must be at least 8 characters long"


class InvalidOrExpiredToken(ValidationError):
    error_code = "invalid_or_expired_token"
    default_message = "Invalid or expired reset token"


class NotDeleted(ValidationError):
    error_code = "not_deleted"
    default_message = "User account is not deleted"


class SelfActionNotAllowed(ValidationError):
    error_code = "self_action_not_allowed"
    default_message = "Cannot perform this action on your own account"


# ── 401 ──────────────────────────────────────────────────────────────
class AuthenticationError(ServiceError):
    status_code = 401
    error_code = "unauthorized"
    default_message = "Authentication required"


class InvalidCredentials(AuthenticationError):
    # Same code & message for "unknown email" and "wrong password".
    error_code = "invalid_credentials"
    default_message = "Invalid credentials"


class MissingToken(AuthenticationError):
    error_code = "missing_token"
    default_message = "missing token"


class InvalidToken(AuthenticationError):
    error_code = "invalid_token"
    default_message = "invalid token"


class MalformedToken(AuthenticationError):
    error_code = "malformed_token"
    default_message = "missing session id"


class SessionRevoked(AuthenticationError):
    error_code = "session_revoked"
    default_message = "session revoked"


# ── 403 ──────────────────────────────────────────────────────────────
class AuthorizationError(ServiceError):
    status_code = 403
    error_code = "forbidden"
    default_message = "Access denied"


class Forbidden(AuthorizationError):
    default_message = "Insufficient permissions"


class AccountNotActive(AuthorizationError):
    error_code = "account_not_active"

    def __init__(self, status: str) -> None:
        self.status = status
        super().__init__(f"Account is {status}")


# ── 404 / 409 / 500 ──────────────────────────────────────────────────
class NotFoundError(ServiceError):
    status_code = 404
    error_code = "not_found"
    default_message = "User not found"


class ConflictError(ServiceError):
    status_code = 409
    error_code = "conflict"
    default_message = "Conflict"


class EmailTaken(ConflictError):
    error_code = "email_taken"
    default_message = "Email already exists"


class ServerError(ServiceError):
    status_code = 500
    error_code = "server_error"
    default_message = "Server error"


class SessionLimitMisconfigured(ServerError):
    pass


# ── HTTP mapping ─────────────────────────────────────────────────────
def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"ok": False, "error": code, "message": message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers that render every failure in the same envelope."""

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError):
        log_fn = logger.error if exc.status_code >= 500 else logger.info
        log_fn(
            "%s %s -> %s (%s)",
            request.method,
            request.url.path,
            exc.status_code,
            exc.error_code,
        )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        response = error_response(exc.status_code, exc.error_code, exc.message)
        if headers:
            response.headers.update(headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        fields = sorted(
            {".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()}
        )
        message = "Missing or invalid fields: " + ", ".join(f for f in fields if f)
        return error_response(400, "validation_error", message.rstrip(": "))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        code = _STATUS_TO_CODE.get(exc.status_code, "server_error")
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return error_response(exc.status_code, code, message)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, "server_error", "Server error")
