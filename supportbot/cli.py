"""Command line entry for the support assistant."""

from __future__ import annotations

import argparse

import uvicorn

from supportbot.core.config import settings


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = False) -> None:
    uvicorn.run("supportbot.api.main:app", host=host, port=port, reload=reload, log_level=settings.LOG_LEVEL.lower())


def main() -> None:
    parser = argparse.ArgumentParser(prog="supportbot", description="Run the support assistant API")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args()
    run_server(args.host, args.port, args.reload)


if __name__ == "__main__":
    main()
