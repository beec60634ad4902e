"""Secrets app entrypoint.

Run with:
  python -m secrets_app
"""

import logging
import os

import uvicorn

from secrets_app.config import load_settings


def main() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = load_settings()
    uvicorn.run(
        "secrets_app.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
    )

if __name__ == "__main__":
    main()
