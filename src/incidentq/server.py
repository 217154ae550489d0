"""Process entry point.

Startup runs in a fixed order before anything is served: settings, database
credentials, then the store connection and schema. Each step raises a typed
error; ``main`` is the only place that turns one into an exit status.
"""

import argparse
import logging
from typing import Any, List, Optional

import uvicorn
from sqlalchemy.exc import SQLAlchemyError

from .app import configure_logging, create_app
from .config import ConfigError, Settings, load_settings
from .credentials import CredentialsError, database_url, fetch_credentials
from .storage import Storage

logger = logging.getLogger("incidentq.server")


def open_storage(settings: Settings, secrets_client: Any = None) -> Storage:
    """Resolve the database URL and connect, creating the schema if needed."""
    if settings.database_url:
        url = settings.database_url
    else:
        creds = fetch_credentials(settings.secret_id, client=secrets_client, region_name=settings.aws_region)
        url = database_url(settings, creds)
    return Storage(url)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Read-only incident query service")
    parser.add_argument("--config", help="YAML config file (default: $INCIDENTQ_CONFIG or config/incidentq.yaml)")
    args = parser.parse_args(argv)

    try:
        settings = load_settings(path=args.config)
    except ConfigError as e:
        configure_logging()
        for problem in e.problems:
            logger.error("Configuration error: %s", problem)
        return 2

    configure_logging(settings.log_level)

    try:
        storage = open_storage(settings)
    except CredentialsError as e:
        logger.error("%s (%s)", e, e.__cause__)
        return 1
    except SQLAlchemyError:
        logger.exception("failed to connect database")
        return 1

    logger.info("Serving incidents on %s:%d (max page size %d)", settings.host, settings.port, settings.max_page_size)
    app = create_app(settings, storage)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
