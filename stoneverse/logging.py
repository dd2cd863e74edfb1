"""Logging for the engine and the API server.

Engine modules log through `logging.getLogger(__name__)` under the
`stoneverse` namespace and never configure handlers themselves. The app
and the `stoneverse-api` entry point install the configuration below, which
uvicorn also receives so server and engine lines share one format.
"""

import logging
import logging.config
from typing import Any

from stoneverse.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def logging_config(level: str | None = None) -> dict[str, Any]:
    """dictConfig schema: one stdout handler, engine at `level`, access log at WARNING."""
    level = (level or settings.log_level).upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "stoneverse": {"level": level},
            "uvicorn": {"level": level},
            "uvicorn.access": {"level": "WARNING"},
        },
        "root": {"level": level, "handlers": ["console"]},
    }


def setup_logging(level: str | None = None) -> None:
    """Install the configuration; `level` defaults to STONEVERSE_LOG_LEVEL."""
    logging.config.dictConfig(logging_config(level))
