"""Run the Filmazia API server with ``python -m filmazia``."""

from __future__ import annotations

import logging

import uvicorn

from app.config import settings

logger = logging.getLogger("filmazia")


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    logger.info(
        "Serving %s (%s) on %s:%s",
        settings.app_name,
        settings.environment,
        settings.server_host,
        settings.server_port,
    )
    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
        proxy_headers=True,
    )


if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    main()
