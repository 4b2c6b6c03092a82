"""
Herbario API application: middleware stack, error handlers and routers.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from herbario.api.errors import app_error_response, code_for_status, error_response
from herbario.api.middleware import (
    BodySizeLimitMiddleware,
    CorrelationIdMiddleware,
    OriginGuardMiddleware,
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
)
from herbario.api.v1 import router as api_router
from herbario.config import get_settings
from herbario.database import close_db, init_db
from herbario.errors import AppError
from herbario.logging_config import configure_logging, get_logger
from herbario.schemas.common import HealthResponse, validation_details

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Configure logging and the database on startup; release the pool on exit."""
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s (%s)", settings.project_name, settings.version, settings.environment)
    if not settings.is_production:
        # Production schemas are managed by alembic
        await init_db()
        logger.info("Database initialized")

    yield

    logger.info("Stopping %s", settings.project_name)
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    Herbario API

    Community plant submissions with admin moderation.

    ## Features

    - **Submissions**: anyone can submit a plant record with an optional photo
    - **Moderation**: admins accept, reject, edit or delete submissions
    - **Public gallery**: accepted records are listed without authentication
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
)


# add_middleware stacks innermost-first, so the LAST added is the OUTERMOST.
# Request path: CORS -> correlation id -> transport policy -> rate limit
# -> origin guard -> body limit -> routes.
app.add_middleware(BodySizeLimitMiddleware)
app.add_middleware(OriginGuardMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["X-Correlation-ID", "Retry-After"],
    max_age=600,
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Taxonomy-coded errors raised by handlers and services."""
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.code, exc.message, exc_info=exc.__cause__ or exc)
    return app_error_response(request, exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    return error_response(
        request,
        status_code=status.HTTP_400_BAD_REQUEST,
        code="VALIDATION_ERROR",
        message="Validation error",
        details=validation_details(exc.errors()),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Unknown routes, wrong methods and any framework-raised HTTP errors."""
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = "Route not found"
    return error_response(
        request,
        status_code=exc.status_code,
        code=code_for_status(exc.status_code),
        message=message,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions. Internal detail never leaves in production."""
    logger.exception("Unhandled exception: %s", exc)
    return error_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="INTERNAL_ERROR",
        message="Internal server error",
        details={"type": type(exc).__name__, "detail": str(exc)},
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Check application health."""
    return HealthResponse(service=settings.project_name, version=settings.version)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "ok": True,
        "name": settings.project_name,
        "version": settings.version,
    }


app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "herbario.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        proxy_headers=True,
    )
