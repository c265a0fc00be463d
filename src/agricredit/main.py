"""
AgriCredit Backend Application

Farming activity logging with anti-fraud verification and credit scoring.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agricredit import __version__
from agricredit.api.v1 import router as api_v1_router
from agricredit.core.config import settings
from agricredit.core.events import create_start_app_handler, create_stop_app_handler
from agricredit.core.exceptions import AgriCreditError, SubmissionRejectedError

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    # Startup
    await create_start_app_handler(app)()
    yield
    # Shutdown
    await create_stop_app_handler(app)()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title=settings.APP_NAME,
        description="Farming activity logging with anti-fraud verification and credit scoring",
        version=__version__,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-User-Id", "X-Request-ID"],
    )

    application.include_router(api_v1_router, prefix="/api/v1")

    @application.exception_handler(AgriCreditError)
    async def agricredit_exception_handler(request: Request, exc: AgriCreditError) -> JSONResponse:
        """Map application errors onto their HTTP status with a structured body."""
        content: dict = {"detail": exc.message}
        if isinstance(exc, SubmissionRejectedError):
            content["reasons"] = exc.reasons
            if exc.fraud_score is not None:
                content["fraud_score"] = exc.fraud_score
        else:
            logger.error(
                "request_failed",
                error=exc.message,
                error_type=type(exc).__name__,
                path=request.url.path,
            )
        return JSONResponse(status_code=exc.status_code, content=content)

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch unhandled exceptions so error responses stay JSON (and keep CORS headers)."""
        logger.exception(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=500,
            content={
                "detail": "An internal server error occurred. Please try again later.",
                "error_type": type(exc).__name__ if settings.DEBUG else "InternalServerError",
            },
        )

    return application


app = create_application()


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for load balancers and monitoring."""
    return {"status": "healthy", "service": "agricredit-api"}


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": __version__,
        "docs": "/docs" if settings.DEBUG else "Documentation disabled in production",
    }
