"""Module executed when running ``python -m seriestracker``."""

from __future__ import annotations

import logging

import uvicorn

from app.config import settings
from app.utils import find_available_port

logger = logging.getLogger(__name__)


def main() -> None:
    """Start the uvicorn server on the first free configured port."""

    port = find_available_port(
        settings.server_host, settings.server_port, settings.server_port_range_end
    )
    if port is None:
        logger.warning(
            "No free port between %d and %d, trying %d anyway",
            settings.server_port,
            settings.server_port_range_end,
            settings.server_port,
        )
        port = settings.server_port

    print(f"{settings.app_name} running on http://localhost:{port}")
    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=port,
        reload=settings.environment == "development",
    )


if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    main()
