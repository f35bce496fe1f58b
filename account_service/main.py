"""
FastAPI application entry point for the account service.
"""
from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import structlog
import uvicorn

from .api.auth import router as auth_router
from .container.container import Container
from .core.config import Settings, get_settings
from .core.exceptions import AccountServiceError

logger = structlog.get_logger()


def configure_logging(settings: Settings) -> None:
    """Configure structured logging once per process."""
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer() if settings.DEBUG else structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=True,
    )


async def account_error_handler(request: Request, exc: AccountServiceError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Request failed",
        path=request.url.path,
        error_code=exc.error_code,
        status_code=exc.status_code,
        retryable=exc.retryable
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors."""
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    logger.warning("Validation error", errors=errors, path=request.url.path)
    return JSONResponse(
        status_code=422,
        content={"error": "Validation error", "errors": errors}
    )


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[Container] = None
) -> FastAPI:
    """
    Build the application.

    A container passed in is used as is and left for the caller to clean up;
    otherwise one is built from ``settings`` during startup.
    """
    if settings is None and container is None:
        settings = get_settings()
        configure_logging(settings)
    settings = settings or container.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting account service", version=settings.VERSION, environment=settings.ENVIRONMENT)
        owned = container is None
        app.state.container = container or Container(settings)
        try:
            await app.state.container.initialize()
            yield
        finally:
            logger.info("Shutting down account service")
            if owned:
                await app.state.container.cleanup()
            logger.info("Account service shutdown complete")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan
    )
    if container is not None:
        app.state.container = container

    app.add_exception_handler(AccountServiceError, account_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    @app.get("/health", tags=["health"])
    async def health_check(request: Request):
        """Liveness plus store reachability."""
        checks = await request.app.state.container.health()
        healthy = all(checks.values())
        return JSONResponse(
            status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "healthy" if healthy else "degraded",
                "checks": checks,
                "service": settings.APP_NAME,
                "version": settings.VERSION
            }
        )

    app.include_router(auth_router, prefix=settings.API_V1_STR)
    return app


def run() -> None:
    """Run the server with settings from the environment."""
    settings = get_settings()
    uvicorn.run(
        "account_service.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
        access_log=False
    )


if __name__ == "__main__":
    run()
