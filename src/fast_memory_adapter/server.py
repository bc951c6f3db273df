"""MCP server setup for the Fast-Memory API Adapter."""

import logging
from typing import Any, Awaitable, Callable, Dict

from fastmcp import FastMCP

from .admin_api import mount_admin_api
from .auth import BearerAuthMiddleware
from .catalog_store import EndpointCatalogStore
from .config import Settings
from .engine import ResolutionEngine
from .executor import RemoteApiExecutor
from .ingest import CatalogIngestor
from .memory_store import FastMemoryStore
from .service import AdapterService
from .tool_registry import ToolDefinition, ToolRegistry

logger = logging.getLogger(__name__)


def build_service(settings: Settings) -> AdapterService:
    if settings.api_key_is_placeholder():
        logger.warning(
            "REMOTE_API_KEY is not set; using placeholder value. Calls to %s will likely be rejected.",
            settings.remote_api_base_url,
        )

    catalog = EndpointCatalogStore(settings.catalog_db_path())
    memory = FastMemoryStore(settings.fast_memory_db_path())
    executor = RemoteApiExecutor(
        base_url=settings.remote_api_base_url,
        api_key=settings.remote_api_key,
        timeout_seconds=settings.remote_api_timeout_seconds,
        verify_ssl=settings.remote_api_verify_ssl,
    )
    engine = ResolutionEngine(
        catalog, memory, executor, max_response_chars=settings.adapter_max_response_chars
    )
    logger.info(
        "Adapter initialized. Target URL: %s, databases in %s",
        settings.remote_api_base_url,
        settings.adapter_db_dir,
    )
    return AdapterService(settings, catalog, memory, engine, CatalogIngestor(catalog), ToolRegistry())


async def build_server(settings: Settings) -> tuple[FastMCP, object | None, AdapterService]:
    service = build_service(settings)

    mcp = FastMCP(settings.service_name, instructions=_instructions())
    app = _get_http_app(mcp, settings)
    _attach_auth(app, settings)
    _attach_healthcheck(app)
    if app:
        mount_admin_api(app, service)

    for definition in service.tool_registry.list_tools():
        handler = _tool_handler(service, definition)
        mcp.tool(name=definition.name, description=definition.description)(handler)
        logger.info("Registered tool: %s", definition.name)

    return mcp, app, service


def _tool_handler(
    service: AdapterService, definition: ToolDefinition
) -> Callable[[Any], Awaitable[Dict[str, Any]]]:
    async def handler(payload: definition.input_model) -> Dict[str, Any]:
        return await service.execute_tool(definition.name, payload.model_dump(exclude_unset=True))

    handler.__name__ = definition.name
    return handler


def _attach_auth(app, settings: Settings) -> None:  # type: ignore[no-untyped-def]
    if not app:
        return
    if not settings.adapter_auth_token:
        logger.warning("ADAPTER_AUTH_TOKEN not set; HTTP endpoints accept anonymous requests")
    app.add_middleware(BearerAuthMiddleware, token=settings.adapter_auth_token)


def _attach_healthcheck(app) -> None:  # type: ignore[no-untyped-def]
    if not app:
        return

    async def healthcheck(_request):  # type: ignore[no-untyped-def]
        from starlette.responses import JSONResponse

        return JSONResponse({"status": "ok"})

    app.add_route("/health", healthcheck, methods=["GET"])


def _instructions() -> str:
    return (
        "Fast-Memory API Adapter. Search the local API catalog, execute calls against the "
        "configured service, and save successful calls to fast memory for reuse."
    )


def _get_http_app(mcp: FastMCP, settings: Settings):  # type: ignore[no-untyped-def]
    transport = settings.adapter_transport.lower()
    if transport in {"http"}:
        app = mcp.http_app(transport="http", stateless_http=True, json_response=True)
        _attach_cors(app)
        return app
    if transport in {"streamable-http", "streamablehttp"}:
        app = mcp.http_app(
            transport="streamable-http", stateless_http=True, json_response=True
        )
        _attach_cors(app)
        return app
    if transport in {"sse"}:
        app = mcp.http_app(transport="sse")
        _attach_cors(app)
        return app
    return None


def _attach_cors(app) -> None:  # type: ignore[no-untyped-def]
    if not app:
        return
    from starlette.middleware.cors import CORSMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
