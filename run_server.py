import os

import uvicorn

from civic_assistant.config import settings
from utils.logging_utils import get_tagged_logger, setup_logging

setup_logging(level=settings.log_level)
logger = get_tagged_logger(__name__, tag="server")


def log_startup_settings() -> None:
    """
    Log the effective configuration with API keys masked.

    Missing upstream keys are not fatal (the service container logs them):
    the affected backend fails fast, chat falls back, and providers return
    their defaults so the dashboard still renders.
    """
    logger.info("Environment: %s", settings.environment)
    logger.info("Provider upstream: %s", settings.provider_backend)
    logger.debug("Effective settings: %s", settings.redacted())


if __name__ == "__main__":
    log_startup_settings()

    uvicorn.run(
        "civic_assistant.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
