"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clubaccess.core.config import settings
from clubaccess.core.errors import DomainError, ErrorKind, HTTP_STATUS_BY_KIND
from clubaccess.core.logging import configure_logging
from clubaccess.core.uow import SchemaCapabilities, UnitOfWorkFactory
from clubaccess.implementations.storage.local import LocalStorageBackend
from clubaccess.services.avatars import AvatarCleaner
from clubaccess.api.routes import router as api_router
from clubaccess.api.middleware.logging import LoggingMiddleware
from clubaccess.api.middleware.request_id import RequestIdMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    configure_logging(settings.log_level, settings.log_format)
    logger.info("Starting", app=settings.app_name, environment=settings.environment)

    yield

    await app.state.avatar_cleaner.drain()
    from clubaccess.models.database import close_db
    await close_db()


def create_app(
    uow_factory: UnitOfWorkFactory | None = None,
    avatar_cleaner: AvatarCleaner | None = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        uow_factory: Unit-of-work factory; defaults to the configured database
        avatar_cleaner: Avatar cleanup; defaults to local storage
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    if uow_factory is None:
        from clubaccess.models.database import async_session_factory
        uow_factory = UnitOfWorkFactory(
            async_session_factory,
            SchemaCapabilities.from_settings(settings.schema_caps),
        )
    app.state.uow_factory = uow_factory
    app.state.avatar_cleaner = avatar_cleaner or AvatarCleaner(
        LocalStorageBackend(settings.storage.local_path),
        prefix=settings.storage.avatar_prefix,
    )

    # Middleware (order matters - last added is outermost)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api")

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        return JSONResponse(
            status_code=HTTP_STATUS_BY_KIND[exc.kind],
            content=exc.to_payload(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        message = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg')}" for e in exc.errors()
        )
        return JSONResponse(
            status_code=HTTP_STATUS_BY_KIND[ErrorKind.VALIDATION_FAILED],
            content={"kind": ErrorKind.VALIDATION_FAILED.value, "message": message},
        )

    @app.get("/health")
    async def health_check():
        """Quick health check endpoint (for load balancers)."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
        }

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "clubaccess.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
    )
