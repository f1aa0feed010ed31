"""
Global exception handlers for the API.

Every error leaves the API in the same envelope:

    {"success": false, "error": "<message>", "code": "<error_code>", ...}

Stage-specific fields (``retryAfter``, ``limitReached``) are merged in at
the top level.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import get_settings
from core.exceptions import AppException

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    400: "bad_request",
    401: "authentication_failed",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    429: "rate_limit_exceeded",
    500: "internal_error",
    501: "not_implemented",
    503: "service_unavailable",
}


def error_body(message: str, code: str, **fields) -> dict:
    """Build the error envelope."""
    return {"success": False, "error": message, "code": code, **fields}


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI app.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        """Handle custom application exceptions."""
        if exc.status_code >= 500:
            logger.error(
                f"AppException: {exc.error_code} - {exc.message}",
                extra={"path": request.url.path, "details": exc.details},
            )
        else:
            logger.warning(
                f"AppException: {exc.error_code} - {exc.message}",
                extra={"path": request.url.path, "details": exc.details},
            )

        content = error_body(exc.message, exc.error_code, **exc.response_fields())
        if exc.details and (exc.status_code < 500 or not get_settings().is_production):
            content["details"] = exc.details

        return JSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request validation errors (malformed JSON, wrong types)."""
        errors = []
        for error in exc.errors():
            loc = " -> ".join(str(x) for x in error["loc"])
            errors.append({
                "field": loc,
                "message": error["msg"],
                "type": error["type"],
            })

        logger.warning(
            f"Validation error on {request.url.path}",
            extra={"errors": errors}
        )

        return JSONResponse(
            status_code=400,
            content=error_body(
                "Request validation failed",
                "validation_error",
                details={"errors": errors},
            ),
        )

    @app.exception_handler(PydanticValidationError)
    async def pydantic_exception_handler(
        request: Request,
        exc: PydanticValidationError
    ) -> JSONResponse:
        """Handle Pydantic validation errors."""
        return JSONResponse(
            status_code=400,
            content=error_body(
                "Data validation failed",
                "validation_error",
                details={"errors": exc.errors(include_url=False, include_context=False)},
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException
    ) -> JSONResponse:
        """Wrap framework HTTP errors (404, 405, ...) in the same envelope."""
        code = HTTP_ERROR_CODES.get(exc.status_code, "http_error")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail), code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle all unhandled exceptions."""
        logger.exception(
            f"Unhandled exception on {request.url.path}: {exc}",
        )

        # In production, hide internal error details
        if get_settings().is_production:
            content = error_body("An unexpected error occurred", "internal_error")
        else:
            content = error_body(
                str(exc), "internal_error", details={"type": type(exc).__name__}
            )

        return JSONResponse(status_code=500, content=content)
