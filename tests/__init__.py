# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Support ChatBot server:
# - test_config.py: Environment loading, defaults, fail-fast validation
# - test_exceptions.py: Error kinds and the {"error": ...} translation
# - test_server.py: Bootstrap stages, routing order, error responses
# - test_middleware.py: Body parsing, rate limiting, shared secret
# - test_database.py: Connection test and soft-fail start-up
# - test_sockets.py: Socket.IO initialization and handlers
#
# Run tests with: pytest
# =============================================================================
