"""Run the FastAPI backend for the cabin UI."""

from __future__ import annotations

import argparse
import logging

import uvicorn

from loadplanner.api.server import app


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the load planner API server")
    parser.add_argument("--host", type=str, default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    uvicorn.run(app, host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
