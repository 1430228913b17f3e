"""
Global exception handling for the application.
Standardizes error responses so every failure carries a user-safe message and a stable code.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.headers = headers
        super().__init__(self.message)


class EntityNotFoundException(AppError):
    """Resource not found error."""
    def __init__(self, message: str = "Entity not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_404_NOT_FOUND, details)


class ValidationException(AppError):
    """Malformed or incomplete input."""
    def __init__(self, message: str = "Invalid input", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_422_UNPROCESSABLE_ENTITY, details)


class UnauthorizedException(AppError):
    """Authentication failure error."""
    def __init__(self, message: str = "Not authorized", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            status.HTTP_401_UNAUTHORIZED,
            details,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenException(AppError):
    """Authorization failure error."""
    def __init__(self, message: str = "Forbidden", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_403_FORBIDDEN, details)


class InvalidCredentialsException(AppError):
    """Unknown e-mail or wrong password at login."""
    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class AccountArchivedException(ForbiddenException):
    def __init__(self, message: str = "Your account has been archived and is no longer active. Please contact support."):
        super().__init__(message)


class AccountExpiredException(ForbiddenException):
    def __init__(self, message: str = "Your account has expired. Please contact an administrator."):
        super().__init__(message)


class DuplicateEmailException(AppError):
    def __init__(self, message: str = "User with this email already exists."):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class DuplicateOrcidException(AppError):
    def __init__(self, message: str = "This ORCID is already used by another user."):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class InvalidOldPasswordException(AppError):
    def __init__(self, message: str = "Old password is incorrect."):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class InvalidOrExpiredTokenException(AppError):
    """Password-reset token unknown, already consumed, or past its expiry."""
    def __init__(self, message: str = "Invalid or expired token."):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class ServerErrorException(AppError):
    """Unexpected failure; the message is generic on purpose."""
    def __init__(self, message: str = "An unexpected error occurred. Please try again later."):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


def _error_body(request: Request, code: str, message: str, details: Optional[Dict[str, Any]] = None) -> dict:
    return {
        "success": False,
        "message": message,
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
            "path": request.url.path,
        },
    }


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.__class__.__name__, exc.message, exc.details),
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors(), exclude={"input", "ctx", "url"})
    message = ", ".join(
        f"{'.'.join(str(part) for part in err['loc'] if part != 'body')}: {err['msg']}" for err in errors
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(request, ValidationException.__name__, message or "Invalid input", {"errors": errors}),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all uncaught exceptions globally."""

    if isinstance(exc, AppError):
        return await app_error_handler(request, exc)

    logger.exception("Unhandled error", path=request.url.path, error_type=exc.__class__.__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, "ServerError", ServerErrorException().message),
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
