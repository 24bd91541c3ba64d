#!/usr/bin/env python3
# =============================================================================
# scripts/start_server.py - HTTP + Socket.IO Server Entry Point
# =============================================================================
# Starts uvicorn on the configured HOST/PORT.
#
# Usage:
#   python scripts/start_server.py
#
#   # Or use uvicorn directly
#   uvicorn support_chatbot.main:app --port 3000
#
# A bind failure (e.g. port already in use) is not caught: uvicorn logs it
# and the process exits non-zero.
# =============================================================================

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import uvicorn

from support_chatbot.config import get_settings
from support_chatbot.logging_config import configure_logging


def main():
    """Start the API server."""
    settings = get_settings()
    configure_logging(settings)

    print("=" * 60)
    print(f"{settings.app.name} v{settings.app.version}")
    print("=" * 60)
    print()
    print(f"Environment: {settings.NODE_ENV}")
    print(f"Listening on http://{settings.HOST}:{settings.PORT}")
    print("Press Ctrl+C to stop")
    print()

    uvicorn.run(
        "support_chatbot.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
    )


if __name__ == "__main__":
    main()
