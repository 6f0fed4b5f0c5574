"""
Main FastAPI application for Hookwarden.
"""
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hookwarden.api.v1.api import api_router
from hookwarden.core.config import settings
from hookwarden.core.database import init_db
from hookwarden.core.exceptions import (
    HookwardenException,
    IdentityLinkLockedError,
    IntegrationAlreadyExistsError,
    InvalidEventError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
    UnknownIntegrationTypeError,
    UserAlreadyExistsError,
)
from hookwarden.core.logging_config import log_error, log_info, log_warning, setup_logging
from hookwarden.middleware.request_logging import RequestLoggingMiddleware, request_id_ctx

# -----------------------------------------------------------------------------
# Startup / Shutdown
# -----------------------------------------------------------------------------
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    log_info("Starting up Hookwarden Service...")
    try:
        init_db()
        log_info("Database initialization completed!")
        log_info(
            "Notification transport: "
            + ("celery" if settings.use_celery_transport else "in-app")
        )
    except Exception as exc:
        log_error(exc)
        raise
    yield
    log_info("Shutting down Hookwarden Service...")


# -----------------------------------------------------------------------------
# App Initialization
# -----------------------------------------------------------------------------
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Webhook notification routing for self-hosted media services",
    openapi_url=f"{settings.api_v1_prefix}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# -----------------------------------------------------------------------------
# Middleware Configuration
# -----------------------------------------------------------------------------
cors_enabled = bool(settings.enable_cors)
cors_origins = settings.cors_origins or []
if cors_enabled:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "Origin", "X-Requested-With"],
        max_age=3600,
    )
    log_info(f"CORS enabled for origins: {cors_origins}")
else:
    log_info("CORS disabled")

app.add_middleware(RequestLoggingMiddleware)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add X-Process-Time header."""
    start_time = time.time()
    response = await call_next(request)
    response.headers["X-Process-Time"] = str(time.time() - start_time)
    return response


# -----------------------------------------------------------------------------
# Exception Handlers
# -----------------------------------------------------------------------------
def exception_status_code(exc: HookwardenException) -> int:
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, (IntegrationAlreadyExistsError, UserAlreadyExistsError)):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, InvalidEventError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, (UnauthorizedError, IdentityLinkLockedError)):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, UnknownIntegrationTypeError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, StorageError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors with detailed logging."""
    request_id = request_id_ctx.get()
    sanitized_errors = [
        {"loc": err.get("loc"), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]

    log_warning(
        "Request validation failed",
        request_id=request_id,
        path=request.url.path,
        method=request.method,
        errors=sanitized_errors,
        event="validation_error"
    )

    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "message": sanitized_errors,
            "request_id": request_id
        },
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    request_id = request_id_ctx.get()
    log_error(exc, request_id=request_id)
    return JSONResponse(
        status_code=422,
        content={"error": "validation_error", "message": str(exc), "request_id": request_id},
    )


@app.exception_handler(HookwardenException)
async def hookwarden_exception_handler(request: Request, exc: HookwardenException):
    request_id = request_id_ctx.get()
    log_error(exc, request_id=request_id)

    status_code = exception_status_code(exc)
    message = (
        "An unexpected internal error occurred."
        if settings.environment == "production" and status_code == 500
        else str(exc)
    )
    content = {"error": type(exc).__name__, "message": message, "request_id": request_id}
    if isinstance(exc, InvalidEventError):
        content["invalid_events"] = exc.event_ids
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    request_id = request_id_ctx.get()
    log_error(exc, request_id=request_id)
    msg = (
        "An unexpected error occurred. Please try again later."
        if settings.environment == "production"
        else str(exc)
    )
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "message": msg, "request_id": request_id},
    )


# -----------------------------------------------------------------------------
# API Routers
# -----------------------------------------------------------------------------
app.include_router(api_router, prefix=settings.api_v1_prefix)


# -----------------------------------------------------------------------------
# Entry Point
# -----------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "hookwarden.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
