from __future__ import annotations

import argparse

import uvicorn

from pointer_relay.logging_utils import configure_logging

from .app import create_app
from .config import get_settings


def main() -> None:
    settings = get_settings()
    ap = argparse.ArgumentParser(description="Relay pointer positions between websocket clients.")
    ap.add_argument("--port", type=int, default=settings.port, help="Listen port")
    args = ap.parse_args()

    settings = settings.model_copy(update={"port": args.port})
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
