# =============================================================================
# support_chatbot/logging_config.py - Logging Setup
# =============================================================================
# Configures the root logger once at process start. Modules log through
# logging.getLogger(__name__) and never configure handlers themselves.
# =============================================================================

import logging

from support_chatbot.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings) -> None:
    """
    Apply the configured level and format to the root logger.

    ENABLE_LOGGING=false silences everything, including errors.
    """
    if not settings.ENABLE_LOGGING:
        logging.disable(logging.CRITICAL)
        return

    logging.disable(logging.NOTSET)
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
        force=True,
    )
