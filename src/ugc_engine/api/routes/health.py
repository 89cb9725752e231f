"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from ugc_engine.adapters.gateway import ProviderGateway
from ugc_engine.config import settings
from ugc_engine.errors import ValidationError
from ugc_engine.logging import get_logger

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    providers: dict[str, str]


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    database: bool
    redis: bool
    components: dict[str, bool] | None = None
    error: str | None = None


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Basic health check endpoint that verifies the API is running.",
)
async def health_check() -> HealthResponse:
    """Basic health check - is the API up? Reports configured provider names."""
    from ugc_engine import __version__

    return HealthResponse(
        status="healthy",
        version=__version__,
        providers={
            "script": settings.script_provider,
            "avatar": settings.avatar_provider,
            "composition": settings.composition_provider,
            "broll": settings.broll_provider,
            "storage": settings.storage_provider,
        },
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Comprehensive readiness check that verifies all dependencies.",
)
async def readiness_check() -> ReadinessResponse:
    """Comprehensive readiness check including dependencies."""
    # Check database
    database_ok = False
    try:
        from sqlalchemy import text

        from ugc_engine.db.session import engine

        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            database_ok = True
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))

    # Check Redis
    redis_ok = False
    try:
        import redis

        r = redis.from_url(settings.redis_url)
        r.ping()
        redis_ok = True
    except Exception as e:
        logger.error("redis_health_check_failed", error=str(e))

    # Check providers
    try:
        components = await ProviderGateway.from_settings().health_check()
    except ValidationError as e:
        return ReadinessResponse(ready=False, database=database_ok, redis=redis_ok, error=e.message)

    return ReadinessResponse(
        ready=database_ok and redis_ok and all(components.values()),
        database=database_ok,
        redis=redis_ok,
        components=components,
    )


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    description="Simple liveness probe for Kubernetes.",
)
async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe - is the process alive?"""
    return {"status": "alive"}
