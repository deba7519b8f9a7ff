"""
FastAPI Middleware for the Sanctions Law Reference API

Provides CORS configuration, request logging, and error handling with a
single error envelope.
"""

import os
import time
import logging
from datetime import datetime, timezone
from typing import Callable, List

from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from config_manager import ConfigurationError
from record_utils import sanitize_for_logging
from sanctions_law.catalogue import UnknownOperationError
from sanctions_law.lookup_service import InputValidationError

logger = logging.getLogger(__name__)

# Default allowed origins for localhost development
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8000",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:8000",
]


def get_cors_origins() -> List[str]:
    """Origins from the comma-separated CORS_ORIGINS variable, else localhost."""
    cors_origins_env = os.getenv("CORS_ORIGINS", "")
    if cors_origins_env:
        return [origin.strip() for origin in cors_origins_env.split(",") if origin.strip()]
    return DEFAULT_CORS_ORIGINS


def setup_cors(app: FastAPI) -> None:
    """Configure CORS middleware for the application.

    The service is read-only, so only GET, POST and OPTIONS are allowed.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Processing-Time-MS"],
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging all requests with sanitized paths."""

    async def dispatch(self, request: Request, call_next: Callable):
        """Process request and log details."""
        start_time = time.time()
        request_id = request.headers.get("X-Request-ID", str(time.time_ns()))

        request.state.request_id = request_id
        request.state.start_time = start_time

        # Sanitize path to prevent log injection
        sanitized_path = sanitize_for_logging(str(request.url.path))
        logger.info(
            "Request: method=%s path=%s request_id=%s",
            request.method,
            sanitized_path,
            sanitize_for_logging(request_id),
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            processing_time_ms = int((time.time() - start_time) * 1000)
            logger.error(
                "Request failed: error=%s processing_time_ms=%d request_id=%s",
                sanitize_for_logging(str(exc)),
                processing_time_ms,
                sanitize_for_logging(request_id),
            )
            raise

        processing_time_ms = int((time.time() - start_time) * 1000)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Processing-Time-MS"] = str(processing_time_ms)

        logger.info(
            "Response: status=%d processing_time_ms=%d request_id=%s",
            response.status_code,
            processing_time_ms,
            sanitize_for_logging(request_id),
        )
        return response


def create_error_response(
    code: str,
    message: str,
    status_code: int = 500,
    field: str = None,
    suggestion: str = None,
) -> JSONResponse:
    """Create a standardized error response.

    Args:
        code: Error code for programmatic handling
        message: Human-readable message
        status_code: HTTP status code
        field: Field that caused the error (optional)
        suggestion: How to fix the error (optional)

    Returns:
        JSONResponse with standardized error format
    """
    error_detail = {
        "code": code,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if field:
        error_detail["field"] = field
    if suggestion:
        error_detail["suggestion"] = suggestion

    return JSONResponse(status_code=status_code, content={"error": error_detail})


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


async def input_validation_handler(request: Request, exc: InputValidationError) -> JSONResponse:
    """Missing or blank required argument."""
    logger.warning(
        "Input validation failed: field=%s request_id=%s",
        exc.field,
        _request_id(request),
    )
    return create_error_response(
        code=exc.code,
        message=str(exc),
        status_code=422,
        field=exc.field,
        suggestion=exc.suggestion,
    )


def _first_error_field(errors: list) -> str:
    if not errors:
        return None
    location = [str(part) for part in errors[0].get("loc", ()) if part != "body"]
    return ".".join(location) or None


async def argument_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    """Wrongly typed arguments, from the catalogue models or the request body."""
    errors = exc.errors()
    field = _first_error_field(errors)
    message = errors[0].get("msg", "Invalid arguments") if errors else "Invalid arguments"
    logger.warning(
        "Invalid arguments: field=%s message=%s request_id=%s",
        field,
        sanitize_for_logging(message),
        _request_id(request),
    )
    return create_error_response(
        code="INVALID_ARGUMENTS",
        message=message,
        status_code=422,
        field=field,
        suggestion="See GET /api/v1/tools for the argument schema of each operation",
    )


async def unknown_operation_handler(request: Request, exc: UnknownOperationError) -> JSONResponse:
    logger.warning(
        "Unknown operation: name=%s request_id=%s",
        sanitize_for_logging(exc.name),
        _request_id(request),
    )
    return create_error_response(
        code="UNKNOWN_OPERATION",
        message=str(exc),
        status_code=404,
        suggestion="See GET /api/v1/tools for the available operations",
    )


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error(
        "Configuration error: %s request_id=%s",
        sanitize_for_logging(str(exc)),
        _request_id(request),
    )
    return create_error_response(
        code="CONFIGURATION_ERROR",
        message="Service configuration is invalid. Please contact administrator.",
        status_code=503,
    )


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Database failure; details stay in the log."""
    logger.error(
        "Storage error: type=%s message=%s request_id=%s",
        type(exc).__name__,
        sanitize_for_logging(str(exc)),
        _request_id(request),
    )
    return create_error_response(
        code="STORAGE_ERROR",
        message="The reference database could not be queried. Please try again later.",
        status_code=500,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for HTTP exceptions.

    Args:
        request: FastAPI request object
        exc: HTTPException that was raised

    Returns:
        Standardized error response
    """
    logger.warning(
        "HTTP exception: status=%d detail=%s request_id=%s",
        exc.status_code,
        sanitize_for_logging(str(exc.detail)),
        _request_id(request),
    )

    return create_error_response(
        code=f"HTTP_{exc.status_code}",
        message=exc.detail if isinstance(exc.detail, str) else str(exc.detail),
        status_code=exc.status_code,
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled errors.

    Sanitizes error messages to prevent information leakage.
    """
    logger.error(
        "Unhandled exception: type=%s message=%s request_id=%s",
        type(exc).__name__,
        sanitize_for_logging(str(exc)),
        _request_id(request),
    )

    return create_error_response(
        code="INTERNAL_ERROR",
        message="An unexpected error occurred. Please try again later.",
        status_code=500,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers for the application."""
    app.add_exception_handler(InputValidationError, input_validation_handler)
    app.add_exception_handler(ValidationError, argument_validation_handler)
    app.add_exception_handler(RequestValidationError, argument_validation_handler)
    app.add_exception_handler(UnknownOperationError, unknown_operation_handler)
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
