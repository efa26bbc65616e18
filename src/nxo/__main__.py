"""Entry point for running nxo via ``python -m nxo``."""

from __future__ import annotations

import logging
import os

import uvicorn


def main() -> None:
    """Start the FastAPI-powered nxo game server."""

    level = os.environ.get("NXO_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    host = os.environ.get("NXO_HOST", "0.0.0.0")
    port = int(os.environ.get("NXO_PORT", "8000"))
    uvicorn.run("nxo.api:app", host=host, port=port, reload=False, log_level=level.lower())


if __name__ == "__main__":
    main()
