"""CLI entry point for the Fast-Memory API Adapter."""

from __future__ import annotations

import asyncio

import uvicorn

from .config import get_settings
from .logging import configure_logging
from .server import build_server


async def _run() -> None:
    settings = get_settings()
    configure_logging(settings.adapter_log_level)

    mcp, app, service = await build_server(settings)
    transport = settings.adapter_transport.lower()

    try:
        if transport in {"http", "streamable-http", "streamablehttp", "sse"}:
            if not app:
                raise RuntimeError(f"HTTP app unavailable for transport={transport}")
            config = uvicorn.Config(app, host=settings.adapter_host, port=settings.adapter_port)
            server = uvicorn.Server(config)
            await server.serve()
            return
        await mcp.run_stdio_async()
    finally:
        await service.engine.drain()


def main() -> None:
    asyncio.run(_run())


if __name__ == "__main__":
    main()
