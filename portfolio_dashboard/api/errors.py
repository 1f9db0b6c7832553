"""
API error handling
Consistent JSON error bodies: {success, status, message, details?}

details are dropped in production so internals never leak.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from portfolio_dashboard.config import settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    def __init__(
        self,
        status: int,
        message: str,
        details: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.status = status
        self.message = message
        self.details = details
        self.headers = headers
        self.extra = extra or {}


def error_body(status: int, message: str, details: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "status": status, "message": message}
    if details is not None and not settings.is_production:
        body["details"] = details
    body.update(extra)
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status >= 500:
        logger.error(f"[Error] {request.method} {request.url.path}: {exc.message} ({exc.details})")
    return JSONResponse(
        status_code=exc.status,
        content=error_body(exc.status, exc.message, exc.details, **exc.extra),
        headers=exc.headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # a known path with the wrong method is reported like any unknown route
    if exc.status_code in (404, 405):
        return JSONResponse(
            status_code=404,
            content={"status": 404, "message": f"Route not found: {request.method} {request.url.path}"},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_body(400, "Invalid request", str(exc.errors())),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"[Error] Unhandled exception on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=error_body(500, "Internal server error", str(exc)),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
