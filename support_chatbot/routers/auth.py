# =============================================================================
# support_chatbot/routers/auth.py - Authentication Mount Point
# =============================================================================
# Mounted at /api/auth. Signup, login and token handling belong to the
# authentication service, which supplies its own router through
# create_app(routers={"auth": ...}). Until then every /api/auth path
# falls through to the 404 handler.
# =============================================================================

from fastapi import APIRouter

router = APIRouter()
