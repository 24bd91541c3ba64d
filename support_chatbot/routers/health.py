# =============================================================================
# support_chatbot/routers/health.py - Health Check Endpoint
# =============================================================================
# Liveness probe for load balancers, answered for GET and HEAD. It reports
# that the process is serving HTTP; it checks neither the database nor
# sockets.
# =============================================================================

from fastapi import APIRouter
from pydantic import BaseModel

router = APIRouter()


class HealthResponse(BaseModel):
    """Basic health check response."""
    status: str
    message: str


@router.api_route("/health", methods=["GET", "HEAD"], response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint.

    Always 200 while the process is serving requests.
    """
    return HealthResponse(status="OK", message="Server is running")
