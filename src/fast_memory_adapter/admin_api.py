"""Admin HTTP API for inspecting the catalog and managing fast memory."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from .auth import require_auth
from .errors import AdapterError
from .service import AdapterService


logger = logging.getLogger(__name__)

_STATUS_BY_KIND = {
    "invalid_input": 422,
    "not_found": 404,
    "unsupported_operation": 404,
    "auth_error": 502,
    "upstream_error": 502,
    "storage_error": 500,
    "internal_error": 500,
}


class FastMemoryCreate(BaseModel):
    natural_language_query: str = Field(..., min_length=1)
    api_path: str = Field(..., min_length=1)
    api_method: str = Field(..., min_length=1)
    api_params: Optional[Dict[str, Any]] = None
    api_data: Optional[Any] = None
    description: Optional[str] = None


class FastMemoryResponse(BaseModel):
    id: int
    natural_language_query: str
    api_path: str
    api_method: str
    api_params: Optional[Dict[str, Any]]
    api_data: Optional[Any]
    description: Optional[str]
    usage_count: int
    created_at: str


def admin_routes(service: AdapterService) -> List[Route]:
    catalog = service.catalog
    memory = service.memory

    async def search_catalog(request: Request) -> JSONResponse:
        require_auth(request)
        term = request.query_params.get("q", "")
        if not term:
            return JSONResponse({"error": "Query parameter 'q' is required"}, status_code=422)
        limit = _int_param(request, "limit", 10)
        try:
            rows = catalog.search(term, limit)
        except AdapterError as exc:
            return _error_response(exc)
        return JSONResponse([row.to_dict() for row in rows])

    async def get_endpoint(request: Request) -> JSONResponse:
        require_auth(request)
        path = request.query_params.get("path")
        method = request.query_params.get("method")
        if not path or not method:
            return JSONResponse({"error": "Query parameters 'path' and 'method' are required"}, status_code=422)
        try:
            endpoint = catalog.get_details(path, method)
        except AdapterError as exc:
            return _error_response(exc)
        return JSONResponse(endpoint.to_dict())

    async def list_entries(request: Request) -> JSONResponse:
        require_auth(request)
        search = request.query_params.get("search") or None
        limit = _int_param(request, "limit", 20)
        try:
            entries = memory.list_entries(search, limit)
        except AdapterError as exc:
            return _error_response(exc)
        return JSONResponse([FastMemoryResponse(**entry.to_dict()).model_dump() for entry in entries])

    async def create_entry(request: Request) -> JSONResponse:
        require_auth(request)
        try:
            payload = await request.json()
            data = FastMemoryCreate(**payload)
        except ValidationError as exc:
            return JSONResponse(
                {"error": "Invalid payload", "details": exc.errors(include_context=False)},
                status_code=422,
            )
        except (ValueError, TypeError):
            return JSONResponse({"error": "Invalid JSON body"}, status_code=422)
        try:
            entry = memory.save(**data.model_dump())
        except AdapterError as exc:
            return _error_response(exc)
        return JSONResponse(FastMemoryResponse(**entry.to_dict()).model_dump())

    async def delete_entry(request: Request) -> JSONResponse:
        require_auth(request)
        entry_id = int(request.path_params["entry_id"])
        try:
            deleted = memory.delete_by_id(entry_id)
        except AdapterError as exc:
            return _error_response(exc)
        if not deleted:
            return JSONResponse({"error": "Not found"}, status_code=404)
        return JSONResponse({"status": "deleted"})

    async def clear_entries(request: Request) -> JSONResponse:
        require_auth(request)
        try:
            deleted = memory.clear_all()
        except AdapterError as exc:
            return _error_response(exc)
        return JSONResponse({"status": "cleared", "deleted": deleted})

    async def execute_tool_by_name(request: Request) -> JSONResponse:
        """Run any tool by name with a JSON arguments body."""
        require_auth(request)
        tool_name = request.path_params["tool_name"]
        try:
            arguments = await request.json()
        except ValueError:
            arguments = {}
        if not isinstance(arguments, dict):
            return JSONResponse({"error": "Arguments must be a JSON object"}, status_code=422)

        result = await service.execute_tool(tool_name, arguments)
        if result.get("is_error"):
            kind = result["error"]["kind"]
            return JSONResponse(result, status_code=_STATUS_BY_KIND.get(kind, 500))
        return JSONResponse(result)

    return [
        Route("/admin/catalog/search", search_catalog, methods=["GET"]),
        Route("/admin/catalog/endpoint", get_endpoint, methods=["GET"]),
        Route("/admin/fast-memory", list_entries, methods=["GET"]),
        Route("/admin/fast-memory", create_entry, methods=["POST"]),
        Route("/admin/fast-memory", clear_entries, methods=["DELETE"]),
        Route("/admin/fast-memory/{entry_id:int}", delete_entry, methods=["DELETE"]),
        Route("/admin/tools/{tool_name:str}/execute", execute_tool_by_name, methods=["POST"]),
    ]


def mount_admin_api(app, service: AdapterService) -> None:  # type: ignore[no-untyped-def]
    app.router.routes.extend(admin_routes(service))


def _int_param(request: Request, name: str, default: int) -> int:
    try:
        return max(1, int(request.query_params.get(name, default)))
    except ValueError:
        return default


def _error_response(exc: AdapterError) -> JSONResponse:
    return JSONResponse(
        {"error": exc.message, "details": exc.to_payload()},
        status_code=_STATUS_BY_KIND.get(exc.kind, 500),
    )
