"""
System health endpoint.
Liveness probe for load balancers; logs at debug level only.
"""

from fastapi import APIRouter, Depends, Request

from reqlog.middleware.request_logger import get_request_logger
from reqlog.services.logger import Logger

router = APIRouter()


@router.get(
    "/health",
    summary="Basic health check",
    response_model=dict,
)
async def health_check(
    request: Request,
    log: Logger = Depends(get_request_logger),
) -> dict:
    """Liveness probe for load balancers and Kubernetes."""
    log.debug("health check")
    return {
        "status": "healthy",
        "version": request.app.state.settings.APP_VERSION,
    }
