"""Serve the API: python -m stoneverse.api"""

import uvicorn

from stoneverse.config import settings
from stoneverse.logging import logging_config


def main() -> None:
    uvicorn.run(
        "stoneverse.api.app:app",
        host=settings.host,
        port=settings.port,
        log_config=logging_config(settings.log_level),
    )


if __name__ == "__main__":
    main()
