"""Main entry point - validates configuration and runs the relay API."""

import logging
import sys

import uvicorn

from pothole_relayer.api.app import create_app
from pothole_relayer.config import ConfigurationError, get_settings

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    """Configure root logging."""
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main() -> int:
    """Main entry point."""
    settings = get_settings()
    configure_logging(settings.debug)

    # Fail before binding the listener, not on the first request
    try:
        settings.validate_required()
    except ConfigurationError as e:
        for problem in e.problems:
            logger.error(f"Configuration error: {problem}")
        return 1

    logger.info("Starting pothole relayer...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Configuration: {settings.get_safe_dict()}")

    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.port,
        log_level="debug" if settings.debug else "info",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
