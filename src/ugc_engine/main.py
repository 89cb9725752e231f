"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ugc_engine import __version__
from ugc_engine.api.envelope import register_exception_handlers
from ugc_engine.api.routes import briefs, costs, generations, health, videos
from ugc_engine.config import settings
from ugc_engine.errors import ValidationError
from ugc_engine.logging import get_logger, setup_logging

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info("application_starting", version=__version__)

    # Startup: verify database connection
    try:
        from ugc_engine.db.session import init_db

        init_db()
        logger.info("database_connected")
    except Exception as e:
        logger.error("database_connection_failed", error=str(e))
        # Don't raise - let health checks report the issue

    # Providers are only built when a batch runs; surface bad names at boot
    try:
        from ugc_engine.adapters.gateway import ProviderGateway

        logger.info("providers_configured", **ProviderGateway.from_settings().describe())
    except ValidationError as e:
        logger.error("provider_configuration_invalid", error=e.message, fields=e.fields)

    yield

    # Shutdown
    logger.info("application_shutting_down")


# Create FastAPI app
app = FastAPI(
    title="UGC Ad Engine",
    description="Batch generation of UGC-style testimonial video ads",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Register routers
app.include_router(health.router)
app.include_router(briefs.router, prefix="/api/v1")
app.include_router(generations.router, prefix="/api/v1")
app.include_router(videos.router, prefix="/api/v1")
app.include_router(costs.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint redirect to docs."""
    return {
        "name": "UGC Ad Engine",
        "version": __version__,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ugc_engine.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
