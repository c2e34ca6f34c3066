"""Health check API endpoints for monitoring and load balancer integration."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# Create the FastAPI router
router = APIRouter()


def _engine(request: Request):
    return getattr(request.app.state, "engine", None)


@router.get("/health")
def basic_health_check() -> Dict[str, Any]:
    """Basic health check that returns system status."""
    return {
        "status": "healthy",
        "message": "Service is operational",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/health/live")
def liveness_probe() -> Dict[str, Any]:
    """Kubernetes liveness probe."""
    return {
        "status": "alive",
        "message": "Application is responsive"
    }


@router.get("/health/ready")
def readiness_probe(request: Request):
    """Kubernetes readiness probe; ready once the engine has registered its venues."""
    engine = _engine(request)
    if engine is None or not engine.is_initialized:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "message": "Engine is not initialized"}
        )
    return {
        "status": "ready",
        "message": "Application is ready to serve traffic",
        "venues": len(engine.registry)
    }


@router.get("/status")
def system_status(request: Request):
    """Component status: venues, router, flash and protection counters."""
    engine = _engine(request)
    if engine is None:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "message": "Engine is not initialized"}
        )
    return {
        "status": "operational" if engine.is_initialized else "starting",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **engine.get_status()
    }
