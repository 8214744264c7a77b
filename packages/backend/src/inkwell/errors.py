"""Error taxonomy and the HTTP exception handlers that render it.

Learn: Services raise these instead of HTTPException so the same code
can run outside a request (CLI, tests). Every AppError carries its own
status code, so the transport layer maps them with a single handler.
Anything that is not an AppError is an InternalError: logged with the
full traceback, shown to the client as a generic message.
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger()

_BEARER = {"WWW-Authenticate": "Bearer"}


class ConfigurationError(Exception):
    """Raised at startup when required configuration is missing or invalid."""


class AppError(Exception):
    """Base for all errors that map to an HTTP response."""

    status_code: int = 500
    detail: str = "Internal server error"

    def __init__(
        self,
        detail: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        if detail is not None:
            self.detail = detail
        self.headers = headers
        super().__init__(self.detail)


class ValidationError(AppError):
    """Missing or malformed request fields."""

    status_code = 400
    detail = "Invalid request"


class InvalidCredentials(AppError):
    """Wrong email or password. Same message for both, on purpose."""

    status_code = 401
    detail = "Invalid email or password"


class Unauthorized(AppError):
    """Missing, malformed, invalid or expired bearer/refresh token."""

    status_code = 401
    detail = "Authentication required"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers=_BEARER)


class RefreshTokenMissing(Unauthorized):
    detail = "Refresh token not found"


class RefreshTokenInvalid(Unauthorized):
    detail = "Invalid or expired refresh token"


class Conflict(AppError):
    """A unique field (username or email) is already taken."""

    status_code = 409

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"User with this {field} already exists")


class NotFound(AppError):
    status_code = 404
    detail = "Not found"


class InternalError(AppError):
    status_code = 500


# ─── Handlers ────────────────────────────────────────────


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request.failed", path=request.url.path, error=str(exc))
        detail = InternalError.detail
    else:
        detail = exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": detail},
        headers=exc.headers,
    )


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render FastAPI's 422 as a 400 with a field-level message."""
    messages = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        field = ".".join(loc) or "body"
        messages.append(f"{field}: {err.get('msg', 'invalid')}")
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={"detail": "; ".join(messages) or ValidationError.detail},
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request.unhandled_error",
        path=request.url.path,
        method=request.method,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": InternalError.detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the taxonomy → HTTP mapping on an app."""
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
