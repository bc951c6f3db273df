"""Core adapter service: dispatches tool calls to the stores and the engine."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from .catalog_store import EndpointCatalogStore
from .config import Settings
from .engine import ResolutionEngine
from .errors import AdapterError
from .ingest import CatalogIngestor
from .logging import redact_payload
from .memory_store import FastMemoryStore
from .models import ResolutionResult
from .tool_registry import (
    DeleteFromFastMemoryInput,
    EndpointDetailsInput,
    ExecuteApiCallInput,
    ListFastMemoryInput,
    LoadApiSpecInput,
    NaturalLanguageSearchInput,
    RawApiRequestInput,
    SaveToFastMemoryInput,
    SearchEndpointsInput,
    ToolInput,
    ToolRegistry,
)

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[Dict[str, Any]]]


class AdapterService:
    """
    Runs tool calls by name.

    Every call returns a result envelope; failures never escape as
    exceptions. Arguments are validated against the tool's input model
    before any store or network access happens.
    """

    def __init__(
        self,
        settings: Settings,
        catalog: EndpointCatalogStore,
        memory: FastMemoryStore,
        engine: ResolutionEngine,
        ingestor: CatalogIngestor,
        tool_registry: Optional[ToolRegistry] = None,
    ) -> None:
        self.settings = settings
        self.catalog = catalog
        self.memory = memory
        self.engine = engine
        self.ingestor = ingestor
        self.tool_registry = tool_registry or ToolRegistry()
        self.semaphore = asyncio.Semaphore(settings.adapter_max_concurrency)
        self._handlers: Dict[str, Handler] = {
            "search_api_endpoints": self._search_api_endpoints,
            "get_api_endpoint_details": self._get_api_endpoint_details,
            "execute_api_call": self._execute_api_call,
            "natural_language_api_search": self._natural_language_api_search,
            "save_to_fast_memory": self._save_to_fast_memory,
            "list_fast_memory": self._list_fast_memory,
            "delete_from_fast_memory": self._delete_from_fast_memory,
            "clear_fast_memory": self._clear_fast_memory,
            "load_api_spec_from_json": self._load_api_spec_from_json,
            "send_raw_api_request": self._send_raw_api_request,
        }

    async def execute_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        async with self.semaphore:
            logger.info("Executing tool=%s arguments=%s", name, redact_payload(arguments))
            try:
                payload = self.tool_registry.validate(name, arguments)
                handler = self._handlers[name]
                return await handler(payload)
            except AdapterError as exc:
                logger.error("Tool %s failed (%s): %s", name, exc.kind, exc)
                return self._format_error(exc.message, exc.to_payload())
            except Exception as exc:
                logger.exception("Unexpected error executing tool %s", name)
                return self._format_error(
                    f"Error executing tool '{name}'. {exc}",
                    {"kind": "internal_error", "message": str(exc)},
                )

    async def _search_api_endpoints(self, payload: SearchEndpointsInput) -> Dict[str, Any]:
        rows = self.catalog.search(payload.query, payload.limit)
        return self._format_result([row.to_dict() for row in rows])

    async def _get_api_endpoint_details(self, payload: EndpointDetailsInput) -> Dict[str, Any]:
        endpoint = self.catalog.get_details(payload.path, payload.method)
        return self._format_result(endpoint.to_dict())

    async def _execute_api_call(self, payload: ExecuteApiCallInput) -> Dict[str, Any]:
        result = await self.engine.resolve_structured(
            payload.path, payload.method, payload.params, payload.data
        )
        return self._format_resolution(result)

    async def _send_raw_api_request(self, payload: RawApiRequestInput) -> Dict[str, Any]:
        result = await self.engine.resolve_raw(payload.raw_request)
        return self._format_resolution(result)

    async def _natural_language_api_search(self, payload: NaturalLanguageSearchInput) -> Dict[str, Any]:
        result = await self.engine.resolve_natural_language(payload.query, payload.max_results)
        if not result.is_match:
            return self._format_text(result.to_dict()["message"], {"match": "none"})
        return self._format_result(result.to_dict(), {"match": result.kind})

    async def _save_to_fast_memory(self, payload: SaveToFastMemoryInput) -> Dict[str, Any]:
        entry = self.memory.save(
            natural_language_query=payload.natural_language_query,
            api_path=payload.api_path,
            api_method=payload.api_method,
            api_params=payload.api_params,
            api_data=payload.api_data,
            description=payload.description,
        )
        return self._format_text(
            f'Saved/Updated fast memory entry (ID: {entry.id}) for query: "{entry.natural_language_query}"',
            {"id": entry.id},
        )

    async def _list_fast_memory(self, payload: ListFastMemoryInput) -> Dict[str, Any]:
        entries = self.memory.list_entries(payload.search_term, payload.limit)
        return self._format_result([entry.to_dict() for entry in entries])

    async def _delete_from_fast_memory(self, payload: DeleteFromFastMemoryInput) -> Dict[str, Any]:
        if self.memory.delete_by_id(payload.id):
            return self._format_text(f"Deleted fast memory entry with ID: {payload.id}", {"deleted": True})
        return self._format_text(f"Fast memory entry with ID {payload.id} not found.", {"deleted": False})

    async def _clear_fast_memory(self, payload: ToolInput) -> Dict[str, Any]:
        deleted = self.memory.clear_all()
        return self._format_text(f"Cleared {deleted} entries from fast memory.", {"deleted": deleted})

    async def _load_api_spec_from_json(self, payload: LoadApiSpecInput) -> Dict[str, Any]:
        summary = await asyncio.to_thread(self.ingestor.ingest_file, payload.json_file_path)
        return self._format_text(
            summary.message(),
            {"added": summary.added, "failed": summary.failed, "title": summary.title},
        )

    def _format_resolution(self, result: ResolutionResult) -> Dict[str, Any]:
        meta: Dict[str, Any] = {"from_cache": result.from_cache}
        if result.save_hint:
            meta["save_hint"] = result.save_hint
        return self._format_text(result.render(), meta)

    def _format_result(self, result: Any, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        envelope: Dict[str, Any] = {"content": [{"type": "json", "json": result}]}
        if meta:
            envelope["meta"] = meta
        return envelope

    def _format_text(self, text: str, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        envelope: Dict[str, Any] = {"content": [{"type": "text", "text": text}]}
        if meta:
            envelope["meta"] = meta
        return envelope

    def _format_error(self, message: str, error: Dict[str, Any]) -> Dict[str, Any]:
        return {"content": [{"type": "text", "text": message}], "is_error": True, "error": error}
