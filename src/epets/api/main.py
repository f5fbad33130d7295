"""Application entry point.

This module provides the application instance for ASGI servers (uvicorn)
and a run() function for direct execution.
"""

import logging

from epets.api import create_app
from epets.core.settings import get_settings

logger = logging.getLogger(__name__)

# What uvicorn references: epets.api.main:app
app = create_app()


def run() -> None:
    """Run the server using uvicorn.

    This function is called by the epets-moderate console script
    defined in pyproject.toml.
    """
    import uvicorn

    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info("Starting moderation site on %s:%d", settings.api_host, settings.api_port)

    uvicorn.run(
        "epets.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        proxy_headers=True,
        reload=False,
    )


if __name__ == "__main__":
    run()
