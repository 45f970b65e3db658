"""Start the chess session server: `python -m src.main` (configured through CHESS_* environment variables)."""

import logging

import uvicorn

from src.api.app import create_app
from src.core.config import Settings

logger = logging.getLogger(__name__)


def run(settings: Settings | None = None) -> None:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Chess server listening on %s:%d", settings.host, settings.port)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
