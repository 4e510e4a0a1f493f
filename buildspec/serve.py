from __future__ import annotations

import logging
import os

import uvicorn

from buildspec.api.main import app

log = logging.getLogger("buildspec.serve")


def main() -> None:
    host = os.getenv("BUILDSPEC_HOST", "127.0.0.1")
    port = int(os.getenv("BUILDSPEC_PORT", "8001"))
    log.info("serving buildspec API on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
