"""Exception handlers shared by every service app.

All error responses use one shape:

    {"success": false, "message": "...", "error": "<kind>", "details": {...}}

Services raise subclasses of ``AppError``; the status code and kind travel on
the exception, so routers never build error payloads themselves.
"""

from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from libs.common.logging import get_logger
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = get_logger(__name__)


class AppError(Exception):
    """Base class for expected, client-reportable failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    kind: str = "error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": False,
            "message": self.message,
            "error": self.kind,
        }
        if self.details:
            payload["details"] = self.details
        return payload


def error_response(
    status_code: int,
    message: str,
    kind: str,
    details: Optional[Any] = None,
) -> JSONResponse:
    content: dict[str, Any] = {"success": False, "message": message, "error": kind}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log("%s on %s: %s", exc.kind, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies are client errors (400), not 422."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.info("Validation error on %s: %s", request.url.path, errors)
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "Invalid request",
        "validation_error",
        {"fields": errors},
    )


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), "http_error")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Never leak internals to the client
    logger.exception("Unhandled error on %s", request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        "server_error",
    )


def add_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
