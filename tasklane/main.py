"""
Tasklane API Server

Entry point for the FastAPI application.
"""

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from tasklane.core.config import get_settings
from tasklane.core.database import get_session
from tasklane.core.errors import AppError
from tasklane.core.logging import configure_logging
from tasklane.core.middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from tasklane.api.v1 import router as api_v1_router
from tasklane.api.v1.auth import router as auth_router
from tasklane_shared.schemas.common import ErrorBody, ErrorResponse

settings = get_settings()
log = structlog.get_logger()


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render every typed application error as ``{"error": {...}}``."""
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    log.info("request.failed", code=exc.code, status=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures in the same envelope as ``AppError``."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    log.info("request.invalid", errors=len(errors))
    body = ErrorResponse(error=ErrorBody(code="VALIDATION_ERROR", message=message, status=422))
    return JSONResponse(status_code=422, content=body.model_dump())


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Tasklane",
        description="Multi-tenant task management backend.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Middleware (last added is outermost)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    # Auth routes (not org-scoped)
    app.include_router(auth_router, prefix="/auth", tags=["Authentication"])

    # API routes
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check(session: AsyncSession = Depends(get_session)):
        """Readiness check endpoint: the database must answer."""
        await session.execute(text("SELECT 1"))
        return {"status": "ready"}

    @app.on_event("startup")
    async def on_startup():
        log.info("app.starting", version=app.version, debug=settings.debug)

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("app.stopping")

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "tasklane.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )
