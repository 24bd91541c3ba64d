# =============================================================================
# support_chatbot/routers/test.py - API Smoke Test Endpoint
# =============================================================================
# Mounted at /api/test. Lets front ends check that the API prefix is
# routed correctly, independent of /health.
# =============================================================================

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

router = APIRouter()


class ApiStatusResponse(BaseModel):
    message: str
    timestamp: str
    status: str


@router.api_route("", methods=["GET", "HEAD"], response_model=ApiStatusResponse)
@router.api_route("/", methods=["GET", "HEAD"], response_model=ApiStatusResponse, include_in_schema=False)
async def api_status():
    """Report that the API is running."""
    return ApiStatusResponse(
        message="API running",
        timestamp=datetime.now(timezone.utc).isoformat(),
        status="success",
    )
