"""
HTTP middleware: request ids, CORS for the website frontend and access logging.
"""

import time
from typing import Callable

import structlog
from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from labsite.config import get_settings

logger = structlog.get_logger(__name__)

# Liveness probes would drown the access log
UNLOGGED_PATHS = frozenset({"/health"})


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One log line per request with status and duration.

    Reset-password URLs carry the raw token in the path, so only the route
    prefix is logged for them.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path in UNLOGGED_PATHS:
            return await call_next(request)

        structlog.contextvars.bind_contextvars(method=request.method, path=_loggable_path(path))
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Request failed", duration_ms=_elapsed_ms(started))
            raise
        finally:
            structlog.contextvars.unbind_contextvars("method", "path")

        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "Request handled",
            method=request.method,
            path=_loggable_path(path),
            status_code=response.status_code,
            client_ip=request.client.host if request.client else "unknown",
            duration_ms=_elapsed_ms(started),
        )
        return response


def _loggable_path(path: str) -> str:
    prefix = "/api/auth/reset-password/"
    return prefix + "<token>" if path.startswith(prefix) else path


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def setup_middleware(app) -> None:
    """Register middleware; Starlette runs the last one added outermost."""
    settings = get_settings()

    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(CorrelationIdMiddleware, header_name="X-Request-ID", update_request_header=True)
