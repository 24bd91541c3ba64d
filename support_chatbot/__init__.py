# =============================================================================
# support_chatbot/ - Support ChatBot Server Package
# =============================================================================
# This package contains the server bootstrap layer:
# - main.py: App factory, bootstrap stages, lifespan, ASGI entry point
# - config.py: Environment variable loading and settings
# - exceptions.py: Tagged error types and the {"error": ...} translation
# - db.py: PostgreSQL connection pool and start-up connection test
# - middleware/: Body parsing, rate limiting, shared secret guard
# - routers/: API endpoint definitions organized by feature
# - sockets/: Socket.IO server sharing the HTTP listener
# =============================================================================

__version__ = "1.0.0"
