"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wellness_sessions.api.sessions import router as sessions_router
from wellness_sessions.app_logging import configure_logging
from wellness_sessions.config import parse_cors_origins
from wellness_sessions.containers import AppContainer
from wellness_sessions.errors import (
    AuthenticationError,
    SessionNotFoundError,
    SessionNotFoundOrUnauthorizedError,
    SessionValidationError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    origins = parse_cors_origins(container.settings.cors_origins)
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(sessions_router)

    @app.exception_handler(SessionValidationError)
    async def validation_failed(
        request: Request, exc: SessionValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "message": "Validation failed",
                "errors": [
                    {"field": error.field, "message": error.message}
                    for error in exc.errors
                ],
            },
        )

    @app.exception_handler(AuthenticationError)
    async def not_authenticated(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"message": str(exc)},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(SessionNotFoundOrUnauthorizedError)
    async def not_found_or_unauthorized(
        request: Request, exc: SessionNotFoundOrUnauthorizedError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND, content={"message": str(exc)}
        )

    @app.exception_handler(SessionNotFoundError)
    async def not_found(request: Request, exc: SessionNotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND, content={"message": str(exc)}
        )

    @app.exception_handler(RuntimeError)
    async def storage_failed(request: Request, exc: RuntimeError) -> JSONResponse:
        logger.exception("Session storage failed on %s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Server error"},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
