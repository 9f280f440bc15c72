"""Serve the marketplace API with Uvicorn.

Host and port are read from the ``API_HOST`` and ``API_PORT``
environment variables (defaults ``0.0.0.0`` and ``8000``).

Usage:
    python run.py
"""
import asyncio
import os

from uvicorn import Config, Server

from beauty_marketplace_api.app.main import app


async def main() -> None:
    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))
    config = Config(app=app, host=host, port=port, reload=False, log_level="info")
    await Server(config).serve()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
