"""FastAPI application entry point.

Leaderboard API - time-windowed Top-K rankings over daily Redis partitions.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from leaderboard.errors import InvalidArgumentError, StoreUnavailableError
from leaderboard.routes import api_router
from leaderboard.schemas import ErrorResponse
from leaderboard.settings import get_settings
from leaderboard.stores.redis import close_redis, create_redis

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Owns the Redis handle: opened on startup, closed on shutdown.
    """
    app.state.redis = None
    try:
        app.state.redis = await create_redis()
    except Exception:
        # Ranking requests answer 503 until Redis is reachable on restart.
        logger.exception("Redis init failed")

    yield

    await close_redis(app.state.redis)
    app.state.redis = None


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Daily, weekly, monthly and trailing-window leaderboards",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    @app.exception_handler(InvalidArgumentError)
    async def invalid_argument_handler(request: Request, exc: InvalidArgumentError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content=ErrorResponse.build("INVALID_ARGUMENT", str(exc)),
        )

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
        return JSONResponse(
            status_code=503,
            content=ErrorResponse.build(
                "STORE_UNAVAILABLE",
                str(exc) if settings.debug else "Ranking store unavailable",
                {"operation": exc.operation},
            ),
        )

    # Exception handler for structured error format
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        return JSONResponse(
            status_code=500,
            content=ErrorResponse.build(
                "INTERNAL_ERROR",
                str(exc) if settings.debug else "Internal server error",
            ),
        )

    # Health check endpoint
    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    app.include_router(api_router)

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "leaderboard.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
