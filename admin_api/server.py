"""Process entry point: connect to the store, then serve."""

import logging
import sys

import uvicorn

from admin_api.config.settings import get_settings
from admin_api.db.client import connect_store
from admin_api.main import create_app

logger = logging.getLogger(__name__)


def run() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        store = connect_store(settings.MONGODB_URI, settings.DB_NAME, settings.MONGODB_TIMEOUT_MS)
    except Exception as exc:
        logger.critical("MongoDB connection error: %s", exc)
        sys.exit(1)

    logger.info("Admin API listening on %s:%d (database %s)", settings.HOST, settings.PORT, settings.DB_NAME)
    uvicorn.run(create_app(settings, store=store), host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
