"""Main FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI

from arbitrage_router.api.errors import register_error_handlers
from arbitrage_router.api.health import router as health_router
from arbitrage_router.api.routes import router as api_router
from arbitrage_router.config.logging_setup import configure_logging
from arbitrage_router.config.settings import Settings, settings
from arbitrage_router.engine import build_engine

logger = logging.getLogger(__name__)


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Manage application lifespan - startup and shutdown events."""
        logger.info("Starting arbitrage router...")
        app.state.engine = await build_engine(app_settings)
        logger.info("Arbitrage router startup complete")

        yield

        logger.info("Shutting down arbitrage router...")
        await app.state.engine.shutdown()
        logger.info("Arbitrage router shutdown complete")

    app = FastAPI(
        title="Arbitrage Router API",
        description="Cross-venue route optimization with atomic execution and MEV protection",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Include API routers
    app.include_router(health_router, tags=["health"])
    app.include_router(api_router, prefix="/api/v1", tags=["router"])
    register_error_handlers(app)

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    configure_logging(settings.log_level)
    uvicorn.run(
        "arbitrage_router.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info" if not settings.debug else "debug",
    )
