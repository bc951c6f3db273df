"""Internal models for endpoints, fast-memory entries and resolutions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD", "TRACE")


@dataclass(frozen=True)
class Endpoint:
    path: str
    method: str
    summary: Optional[str] = None
    description: Optional[str] = None
    parameters: Any = None
    request_body: Any = None
    responses: Any = None
    tags: Any = None
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "method": self.method,
            "summary": self.summary,
            "description": self.description,
            "parameters": self.parameters,
            "requestBody": self.request_body,
            "responses": self.responses,
            "tags": self.tags,
        }


@dataclass(frozen=True)
class EndpointSummary:
    id: int
    path: str
    method: str
    summary: Optional[str]
    description: Optional[str]
    tags: Any

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "method": self.method,
            "summary": self.summary,
            "description": self.description,
            "tags": self.tags,
        }


@dataclass(frozen=True)
class FastMemoryEntry:
    id: int
    natural_language_query: str
    api_path: str
    api_method: str
    api_params: Optional[Dict[str, Any]]
    api_data: Any
    description: Optional[str]
    usage_count: int
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "natural_language_query": self.natural_language_query,
            "api_path": self.api_path,
            "api_method": self.api_method,
            "api_params": self.api_params,
            "api_data": self.api_data,
            "description": self.description,
            "usage_count": self.usage_count,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class ApiCall:
    path: str
    method: str
    params: Optional[Dict[str, Any]] = None
    data: Any = None


@dataclass
class CallContext:
    """Transient state for a single request. Never shared between requests."""

    from_cache: bool = False
    last_call: Optional[ApiCall] = None
    cache_entry: Optional[FastMemoryEntry] = None


@dataclass(frozen=True)
class ResolutionResult:
    body: str
    from_cache: bool
    save_hint: Optional[str] = None
    note: Optional[str] = None
    call: Optional[ApiCall] = None

    def render(self) -> str:
        text = self.body
        if self.note:
            text = f"{self.note}\n\n{text}"
        if self.save_hint:
            text = f"{text}\n\n---\n{self.save_hint}"
        return text


@dataclass(frozen=True)
class NaturalLanguageResult:
    kind: str  # "fast_memory", "catalog" or "no_match"
    query: str
    entry: Optional[FastMemoryEntry] = None
    endpoints: List[EndpointSummary] = field(default_factory=list)

    @property
    def is_match(self) -> bool:
        return self.kind != "no_match"

    def to_dict(self) -> Dict[str, Any]:
        if self.kind == "fast_memory" and self.entry is not None:
            return {"message": "Found match in fast memory.", "entry": self.entry.to_dict()}
        if self.kind == "catalog":
            return {
                "message": f'Found potential matches in API spec database for query: "{self.query}"',
                "results": [endpoint.to_dict() for endpoint in self.endpoints],
            }
        return {"message": f'No match found in fast memory or API spec for query: "{self.query}"'}


@dataclass(frozen=True)
class IngestSummary:
    added: int
    failed: int
    title: Optional[str] = None
    version: Optional[str] = None

    def message(self) -> str:
        return f"API Spec Load Complete. Added/Updated: {self.added}, Failed: {self.failed}."
