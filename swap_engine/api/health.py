"""Health check endpoints.

Provides health status for monitoring and load balancing.
"""

from typing import Dict

from fastapi import APIRouter, Request, Response

router = APIRouter()

SERVICE_NAME = "swap-engine"


@router.get("/health")
async def health_check() -> Dict[str, str]:
    """Basic health check endpoint.

    Returns:
        Health status
    """
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/health/ready")
async def readiness_check(request: Request, response: Response) -> Dict[str, str]:
    """Readiness check - verifies the trading bot service has been wired.

    Returns:
        Readiness status, 503 while the service is not initialized
    """
    if getattr(request.app.state, "bot_service", None) is None:
        response.status_code = 503
        return {"status": "not_ready", "service": SERVICE_NAME}
    return {"status": "ready", "service": SERVICE_NAME}


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """Liveness check - verifies service is alive.

    Returns:
        Liveness status
    """
    return {"status": "alive", "service": SERVICE_NAME}
