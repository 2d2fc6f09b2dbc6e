"""
Monitoring Service - Main Application
======================================

FastAPI application exposing the compliance monitoring engine: run trigger,
alerts, obligations and scores.

Version: 0.1.0
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.monitoring.dependencies import build_monitor
from services.monitoring.errors import StoreUnavailableError, TenantConfigurationError
from services.monitoring.routes import alerts, obligations, runs, scores
from shared.config import NotifierBackend, RecordStoreBackend, settings
from shared.database.kafka import KafkaClient
from shared.database.postgres import PostgresClient
from shared.database.redis import RedisClient
from shared.logging import get_logger, setup_logging
from shared.models.common import HealthResponse


# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name="monitoring",
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    config = settings.monitoring
    logger.info(
        "monitoring_service_starting",
        environment=settings.environment.value,
        port=settings.monitoring_port,
        record_store=config.record_store.value,
        notifier=config.notifier.value,
    )

    # Startup
    try:
        app.state.monitor = build_monitor(config)
        RedisClient.get_client()
        if config.notifier == NotifierBackend.KAFKA:
            await KafkaClient.get_producer()
            logger.info("kafka_connected")

    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    yield

    # Shutdown
    logger.info("monitoring_service_shutting_down")
    await RedisClient.close()
    if config.notifier == NotifierBackend.KAFKA:
        await KafkaClient.close()
    if config.record_store == RecordStoreBackend.POSTGRES:
        await PostgresClient.close()


# Create FastAPI application
app = FastAPI(
    title="Duewatch Monitoring Service",
    description="Compliance deadline, penalty and alert monitoring",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """
    Service health check.

    Returns health status of the service and its collaborators.
    """
    config = settings.monitoring
    components: dict[str, dict[str, Any]] = {
        "redis": await RedisClient.health_check(),
    }

    if config.record_store == RecordStoreBackend.POSTGRES:
        components["postgres"] = await PostgresClient.health_check()
    if config.notifier == NotifierBackend.KAFKA:
        components["kafka"] = await KafkaClient.health_check()

    all_healthy = all(c.get("status") == "healthy" for c in components.values())

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        service="monitoring",
        version="0.1.0",
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "Duewatch Monitoring Service",
        "version": "0.1.0",
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    runs.router,
    prefix="/api/v1/runs",
    tags=["Runs"],
)

app.include_router(
    alerts.router,
    prefix="/api/v1/tenants/{tenant_id}/alerts",
    tags=["Alerts"],
)

app.include_router(
    obligations.router,
    prefix="/api/v1/tenants/{tenant_id}/obligations",
    tags=["Obligations"],
)

app.include_router(
    scores.router,
    prefix="/api/v1/tenants/{tenant_id}/scores",
    tags=["Scores"],
)


# ============================================================================
# Error Handlers
# ============================================================================


@app.exception_handler(TenantConfigurationError)
async def tenant_configuration_handler(request: Request, exc: TenantConfigurationError) -> JSONResponse:
    """A tenant without a usable catalog cannot be monitored."""
    logger.warning("tenant_not_configured", tenant_id=exc.tenant_id, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "success": False,
            "error": str(exc),
            "error_code": "tenant_not_configured",
            "status_code": 404,
        },
    )


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    """Record store still unavailable after retries."""
    logger.error("record_store_unavailable", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "success": False,
            "error": "Record store unavailable",
            "error_code": "store_unavailable",
            "status_code": 503,
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "status_code": exc.status_code,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Internal server error",
            "status_code": 500,
        },
    )


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.monitoring.main:app",
        host="0.0.0.0",
        port=settings.monitoring_port,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )
