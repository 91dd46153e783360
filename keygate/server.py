"""
Run the record store service under uvicorn.

The listen port comes from ``PORT`` (default 3000).
"""

from __future__ import annotations

import logging

import uvicorn

from keygate.config import get_settings

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    from keygate.app import app

    logger.info("Server running at port %d", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
