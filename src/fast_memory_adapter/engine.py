"""Resolution engine: fast memory first, catalog second, remote API always last."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Set

from .catalog_store import EndpointCatalogStore
from .executor import RemoteApiExecutor
from .logging import redact_payload
from .memory_store import FastMemoryStore
from .models import ApiCall, CallContext, FastMemoryEntry, NaturalLanguageResult, ResolutionResult
from .raw_request import parse_raw_request

logger = logging.getLogger(__name__)

MAX_RESPONSE_LENGTH = 5000
TRUNCATION_MARKER = "\n... (Response truncated)"


class ResolutionEngine:
    """
    Resolves structured, raw and natural-language requests.

    Each request gets its own CallContext, so the cache flag and the last
    successful call never leak between overlapping requests. Usage counters
    are bumped by detached tasks that the response never waits on.
    """

    def __init__(
        self,
        catalog: EndpointCatalogStore,
        memory: FastMemoryStore,
        executor: RemoteApiExecutor,
        max_response_chars: int = MAX_RESPONSE_LENGTH,
    ) -> None:
        self.catalog = catalog
        self.memory = memory
        self.executor = executor
        self.max_response_chars = max_response_chars
        self._background: Set[asyncio.Task[None]] = set()

    async def resolve_structured(
        self,
        path: str,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        data: Any = None,
    ) -> ResolutionResult:
        context = CallContext()
        method = method.upper()

        entry = self.memory.find_by_path_method(path, method)
        if entry is not None:
            logger.info("Found matching entry in fast memory (id=%s) for %s %s", entry.id, method, path)
            context.from_cache = True
            context.cache_entry = entry
            if params is None:
                params = stored_params(entry)
            if data is None:
                data = entry.api_data
            self._schedule_usage_increment(entry.id)

        return await self._execute(context, ApiCall(path=path, method=method, params=params, data=data))

    async def resolve_raw(self, raw_request: str) -> ResolutionResult:
        request = parse_raw_request(raw_request)
        logger.info(
            "Executing raw request as: %s %s params=%s",
            request.method,
            request.path,
            redact_payload(request.params),
        )
        context = CallContext()
        context.cache_entry = self.memory.find_by_path_method(request.path, request.method)
        return await self._execute(context, request.to_call())

    async def resolve_natural_language(self, query: str, max_results: int = 5) -> NaturalLanguageResult:
        entry = self.memory.find_by_query_substring(query)
        if entry is not None:
            logger.info("Found match in fast memory (id=%s) for query %r", entry.id, query)
            self._schedule_usage_increment(entry.id)
            return NaturalLanguageResult(kind="fast_memory", query=query, entry=entry)

        logger.info("No match in fast memory for query %r; searching API spec catalog", query)
        endpoints = self.catalog.search_by_specificity(query, max_results)
        if not endpoints:
            return NaturalLanguageResult(kind="no_match", query=query)
        return NaturalLanguageResult(kind="catalog", query=query, endpoints=endpoints)

    async def drain(self) -> None:
        """Wait for outstanding usage-count updates."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def _execute(self, context: CallContext, call: ApiCall) -> ResolutionResult:
        result = await self.executor.execute(call.method, call.path, call.params, call.data)
        context.last_call = call

        note: Optional[str] = None
        save_hint: Optional[str] = None
        entry = context.cache_entry
        if context.from_cache and entry is not None:
            note = f"[Using query from Fast Memory: {describe_entry(entry)}]"
        elif entry is not None:
            note = f"[Already saved in Fast Memory as ID {entry.id}]"
        else:
            save_hint = format_save_hint(call)

        return ResolutionResult(
            body=truncate_body(serialize_body(result), self.max_response_chars),
            from_cache=context.from_cache,
            save_hint=save_hint,
            note=note,
            call=context.last_call,
        )

    def _schedule_usage_increment(self, entry_id: int) -> None:
        task = asyncio.get_running_loop().create_task(self._increment_usage(entry_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _increment_usage(self, entry_id: int) -> None:
        try:
            await asyncio.to_thread(self.memory.increment_usage, entry_id)
        except Exception as exc:
            logger.error("Failed to increment usage count for fast memory id=%s: %s", entry_id, exc)


def serialize_body(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, indent=2, ensure_ascii=False, default=str)


def truncate_body(text: str, limit: int = MAX_RESPONSE_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


def format_save_hint(call: ApiCall) -> str:
    arguments = [
        'natural_language_query="YOUR_QUERY"',
        'description="YOUR_DESCRIPTION"',
        f"api_path={json.dumps(call.path)}",
        f"api_method={json.dumps(call.method.upper())}",
    ]
    if call.params:
        arguments.append(f"api_params={json.dumps(call.params)}")
    if call.data is not None:
        arguments.append(f"api_data={json.dumps(call.data)}")
    return (
        "API call successful. To save this to Fast Memory for future use:\n"
        f"save_to_fast_memory({', '.join(arguments)})"
    )


def describe_entry(entry: FastMemoryEntry) -> str:
    return entry.description or f"ID {entry.id}"


def stored_params(entry: FastMemoryEntry) -> Optional[Dict[str, Any]]:
    """Stored query params, or None when the saved value is not an object."""
    if entry.api_params is None or isinstance(entry.api_params, dict):
        return entry.api_params
    logger.warning("Ignoring unusable stored api_params for fast memory id=%s", entry.id)
    return None
