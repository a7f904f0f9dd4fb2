"""
Repeater Sanitizer Service - FastAPI Application Entry Point.

Cleans repeater field values subfield by subfield before the host stores them.
"""
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api.health import router as health_router
from app.api.sanitize import router as sanitize_router
from app.core.config import get_settings
from app.core.logging import get_safe_logger, setup_logging
from app.schemas.response import ErrorDetail, ErrorResponse, ResponseMetadata
from app.services.exceptions import SanitizerError


# Initialize logging first
setup_logging()
logger = get_safe_logger(__name__)

SERVICE_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.
    """
    logger.info("Starting Repeater Sanitizer Service")
    yield
    logger.info("Shutting down Repeater Sanitizer Service")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Repeater Sanitizer Service",
        description="Per-subfield sanitization of repeater field values",
        version=SERVICE_VERSION,
        docs_url="/docs" if settings.service_env == "dev" else None,
        redoc_url="/redoc" if settings.service_env == "dev" else None,
        openapi_url="/openapi.json" if settings.service_env == "dev" else None,
        lifespan=lifespan
    )

    # Register routes
    app.include_router(health_router)
    app.include_router(sanitize_router)

    # Register exception handlers
    app.add_exception_handler(SanitizerError, sanitizer_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    return app


def _request_id(request: Request) -> str:
    return request.headers.get("X-Request-ID", str(uuid.uuid4()))


def _error_response(
    status_code: int,
    code: str,
    message: str,
    request_id: str,
    retryable: bool = False,
) -> JSONResponse:
    error_response = ErrorResponse(
        success=False,
        error=ErrorDetail(code=code, message=message, retryable=retryable),
        metadata=ResponseMetadata(requestId=request_id)
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(by_alias=True)
    )


async def sanitizer_exception_handler(
    request: Request,
    exc: SanitizerError
) -> JSONResponse:
    """
    Handle sanitizer errors (undecodable values, unknown callbacks).
    Messages are value-safe by construction.
    """
    request_id = _request_id(request)
    logger.error(
        "Sanitizer error",
        error_code=exc.error_code.value,
        request_id=request_id,
        status_code=exc.status_code
    )
    return _error_response(
        exc.status_code,
        exc.error_code.value,
        exc.message,
        request_id,
        retryable=exc.retryable,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors.
    Value-safe: don't include validation details that might echo field values.
    """
    request_id = _request_id(request)

    logger.error(
        "Request validation failed",
        error_code="BAD_REQUEST",
        request_id=request_id,
        status_code=400
    )

    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "BAD_REQUEST",
        "Invalid request format",
        request_id,
    )


async def http_exception_handler(
    request: Request,
    exc: HTTPException
) -> JSONResponse:
    """
    Handle HTTP exceptions (auth and admin-token errors).
    """
    request_id = _request_id(request)

    # Map status codes to error codes
    if exc.status_code == 401:
        error_code = "UNAUTHORIZED"
    elif exc.status_code == 403:
        error_code = "FORBIDDEN"
    elif exc.status_code < 500:
        error_code = "BAD_REQUEST"
    else:
        error_code = "INTERNAL_ERROR"

    logger.error(
        "HTTP exception",
        error_code=error_code,
        request_id=request_id,
        status_code=exc.status_code
    )

    return _error_response(
        exc.status_code,
        error_code,
        exc.detail if isinstance(exc.detail, str) else "Request failed",
        request_id,
        retryable=exc.status_code >= 500,
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions.
    Value-safe: Never log exception details.
    """
    request_id = _request_id(request)

    logger.error(
        "Unexpected error",
        error_code="INTERNAL_ERROR",
        request_id=request_id,
        status_code=500,
        exception_class=type(exc).__name__
    )

    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "Internal server error",
        request_id,
        retryable=True,
    )


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.service_env == "dev"
    )
