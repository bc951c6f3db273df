"""Tool registry for the Fast-Memory API Adapter."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import InvalidInputError, UnsupportedOperationError


logger = logging.getLogger(__name__)


class ToolInput(BaseModel):
    model_config = ConfigDict(extra="forbid")


class SearchEndpointsInput(ToolInput):
    query: str = Field(..., min_length=1, description="Search term for path, summary, description, or tags.")
    limit: int = Field(10, ge=1, description="Maximum number of results")


class EndpointDetailsInput(ToolInput):
    path: str = Field(..., min_length=1, description="Exact API path (e.g., /workflows).")
    method: str = Field(..., min_length=1, description="HTTP method (e.g., GET, POST).")


class ExecuteApiCallInput(ToolInput):
    path: str = Field(..., min_length=1, description="API endpoint path (e.g., /workflows).")
    method: str = Field(..., min_length=1, description="HTTP method (GET, POST, PUT, DELETE, etc.).")
    params: Optional[Dict[str, Any]] = Field(None, description="Query parameters as a JSON object.")
    data: Optional[Any] = Field(None, description="Request body as JSON (for POST, PUT, PATCH).")


class NaturalLanguageSearchInput(ToolInput):
    query: str = Field(..., min_length=1, description="Natural language description of the desired API call.")
    max_results: int = Field(5, ge=1, description="Maximum number of catalog results when fast memory has no match")


class SaveToFastMemoryInput(ToolInput):
    natural_language_query: str = Field(..., min_length=1, description="The original natural language query.")
    api_path: str = Field(..., min_length=1, description="The executed API path.")
    api_method: str = Field(..., min_length=1, description="The executed API method.")
    api_params: Optional[Dict[str, Any]] = Field(None, description="The executed API query parameters.")
    api_data: Optional[Any] = Field(None, description="The executed API request body.")
    description: Optional[str] = Field(None, description="Optional user description for this entry.")


class ListFastMemoryInput(ToolInput):
    search_term: Optional[str] = Field(None, description="Filter entries by query or description.")
    limit: int = Field(20, ge=1, description="Maximum number of results")


class DeleteFromFastMemoryInput(ToolInput):
    id: int = Field(..., description="The ID of the fast memory entry to delete.")


class ClearFastMemoryInput(ToolInput):
    pass


class LoadApiSpecInput(ToolInput):
    json_file_path: str = Field(..., min_length=1, description="Path to the OpenAPI JSON file.")


class RawApiRequestInput(ToolInput):
    raw_request: str = Field(
        ...,
        min_length=1,
        description="Raw request string, e.g. 'GET /workflows?limit=5' or 'POST /workflows {\"name\":\"x\"}'.",
    )


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    input_model: Type[ToolInput]


TOOL_DEFINITIONS: List[ToolDefinition] = [
    ToolDefinition(
        "search_api_endpoints",
        "Search available API endpoints stored in the local spec database.",
        SearchEndpointsInput,
    ),
    ToolDefinition(
        "get_api_endpoint_details",
        "Get detailed information for a specific API endpoint from the local spec database.",
        EndpointDetailsInput,
    ),
    ToolDefinition(
        "execute_api_call",
        "Execute an API call against the configured service. Reuses fast memory for known path+method pairs.",
        ExecuteApiCallInput,
    ),
    ToolDefinition(
        "natural_language_api_search",
        "Search for API calls using natural language. Checks fast memory first.",
        NaturalLanguageSearchInput,
    ),
    ToolDefinition(
        "save_to_fast_memory",
        "Save a natural language query and its API call details to fast memory.",
        SaveToFastMemoryInput,
    ),
    ToolDefinition(
        "list_fast_memory",
        "List entries stored in fast memory.",
        ListFastMemoryInput,
    ),
    ToolDefinition(
        "delete_from_fast_memory",
        "Delete an entry from fast memory by its ID.",
        DeleteFromFastMemoryInput,
    ),
    ToolDefinition(
        "clear_fast_memory",
        "Clear all entries from the fast memory database.",
        ClearFastMemoryInput,
    ),
    ToolDefinition(
        "load_api_spec_from_json",
        "Load an OpenAPI specification from a JSON file into the spec database.",
        LoadApiSpecInput,
    ),
    ToolDefinition(
        "send_raw_api_request",
        "Send a raw API request string. Format: 'METHOD /path?query=val [JSON_BODY]'",
        RawApiRequestInput,
    ),
]


class ToolRegistry:
    def __init__(self, definitions: Iterable[ToolDefinition] = TOOL_DEFINITIONS) -> None:
        self._tools: Dict[str, ToolDefinition] = {}
        for definition in definitions:
            self._tools[definition.name] = definition

    def list_tools(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def get(self, name: str) -> ToolDefinition:
        definition = self._tools.get(name)
        if definition is None:
            raise UnsupportedOperationError(f"Unknown tool: {name}")
        return definition

    def validate(self, name: str, arguments: Optional[Dict[str, Any]]) -> ToolInput:
        definition = self.get(name)
        try:
            return definition.input_model.model_validate(arguments or {})
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'arguments'}: {error['msg']}"
                for error in exc.errors()
            )
            raise InvalidInputError(f"Invalid arguments for {name}: {details}") from exc
