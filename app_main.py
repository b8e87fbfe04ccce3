"""Application entry point for the Quiz Portal server."""

from __future__ import annotations

from quiz_portal.core.quiz_manager import QuizManager
from quiz_portal.server.api_server import serve
from quiz_portal.utils.logging_config import configure_logging
from quiz_portal.utils.settings import PortalSettings


def main() -> None:
    """Load settings, initialize logging, and serve the portal API."""
    settings = PortalSettings.from_env()
    logger = configure_logging(settings.log_level)
    logger.info("Starting Quiz Portal…")

    quiz_manager = QuizManager.from_settings(settings)
    logger.info("Local data file: %s", settings.data_file)
    logger.info("Portal API available at http://%s:%d/api", settings.host, settings.port)
    serve(quiz_manager, host=settings.host, port=settings.port, log_level=settings.log_level)


if __name__ == "__main__":
    main()
