"""
IoT Device Ledger

Main application entry point.

Run with:
    uvicorn iotledger.main:app
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from iotledger import __version__
from iotledger.api.routes import router
from iotledger.observability import (
    RequestContextMiddleware,
    check_health,
    get_logger,
    get_metrics,
    setup_logging,
)
from iotledger.shared_state import get_world_state

# Setup logging at import time
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    app.state.world_state = get_world_state()

    logger.info(
        "Application startup complete",
        store_type=type(app.state.world_state).__name__,
    )

    yield

    logger.info("Application shutdown complete")


app = FastAPI(
    title="IoT Device Ledger",
    description="""
## IoT Device Ledger

A registry of IoT devices and a verification workflow for the data they submit.

### Rules

- **Unique**: A device id can be registered only once
- **Referential**: Data can only be submitted for a registered device
- **Verifiable**: Every record starts pending and is verified or rejected by a verifier

### Record Lifecycle

```
pending → verified
        → rejected
```

### Storage Backends

- **InMemoryWorldState**: Development/testing (default)
- **PostgresWorldState**: Production with full durability

Set `DATABASE_URL` or `DATABASE_HOST` environment variables to use PostgreSQL.
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)

app.include_router(router, prefix="/api/v1")


@app.get("/health", tags=["System"])
async def health():
    """
    Basic health check endpoint.

    Returns 200 if the service is running.
    For detailed health, use /health/detailed
    """
    return {"status": "healthy", "service": "iotledger"}


@app.get("/health/detailed", tags=["System"])
def health_detailed(request: Request):
    """
    Detailed health check.

    Checks:
    - Service liveness
    - World state connectivity and key count

    Returns 200 if healthy, 503 if unhealthy.
    """
    health_status = check_health(world_state=request.app.state.world_state)

    return JSONResponse(
        status_code=200 if health_status.healthy else 503,
        content={
            "status": "healthy" if health_status.healthy else "unhealthy",
            "checks": health_status.checks,
            "duration_ms": health_status.duration_ms,
        },
    )


@app.get("/metrics", tags=["System"])
async def metrics():
    """
    Get application metrics.

    Returns counters and latency percentiles.
    """
    return get_metrics().get_summary()


@app.get("/api", tags=["System"])
async def api_info(request: Request):
    """API info."""
    return {
        "name": "IoT Device Ledger API",
        "version": __version__,
        "storage_backend": type(request.app.state.world_state).__name__,
        "endpoints": {
            "register_device": "POST /api/v1/devices",
            "get_device": "GET /api/v1/devices/{device_id}",
            "device_exists": "GET /api/v1/devices/{device_id}/exists",
            "submit_data": "POST /api/v1/devices/{device_id}/records",
            "list_records": "GET /api/v1/devices/{device_id}/records",
            "get_record": "GET /api/v1/devices/{device_id}/records/{timestamp}",
            "verify_data": "POST /api/v1/devices/{device_id}/records/{timestamp}/verify",
        },
    }
