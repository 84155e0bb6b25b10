"""FastAPI application entrypoint for the support assistant."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from supportbot.api.container import ServiceContainer, build_container
from supportbot.api.middleware.logging import LoggingMiddleware
from supportbot.api.middleware.ratelimit import RateLimitMiddleware
from supportbot.api.routes import chat, documents, faqs, health
from supportbot.core.config import settings
from supportbot.core.database import database_manager
from supportbot.core.exceptions import ApplicationError
from supportbot.core.observability import configure_logging, setup_tracing
from supportbot.knowledge.stores import mongo


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """Build the application; tests pass a prebuilt container to skip store selection."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Initialize shared resources on startup and tear them down on shutdown."""

        await database_manager.initialize()
        services = container or build_container(settings)
        if settings.STORE_BACKEND == "mongo" and container is None:
            await mongo.ensure_indexes(services.documents, services.faqs, services.conversations)
        await services.start()
        app.state.container = services

        try:
            yield
        finally:
            await services.stop()
            await database_manager.close()

    app = FastAPI(
        title=settings.API_TITLE,
        version=settings.API_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    setup_tracing(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # Routers
    app.include_router(health.router, prefix="/api")
    app.include_router(chat.router, prefix="/api")
    app.include_router(documents.router, prefix="/api")
    app.include_router(faqs.router, prefix="/api")

    @app.exception_handler(ApplicationError)
    async def handle_application_error(_: Request, exc: ApplicationError):
        """Return standardized responses for application layer exceptions."""

        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})

    return app


configure_logging()
app = create_app()
