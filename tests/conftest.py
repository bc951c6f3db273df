"""Shared fixtures: stores on temporary SQLite files and a mock upstream."""

from __future__ import annotations

from typing import Any, Callable, Dict, List

import httpx
import pytest

from fast_memory_adapter.catalog_store import EndpointCatalogStore
from fast_memory_adapter.config import Settings
from fast_memory_adapter.engine import ResolutionEngine
from fast_memory_adapter.executor import RemoteApiExecutor
from fast_memory_adapter.ingest import CatalogIngestor
from fast_memory_adapter.memory_store import FastMemoryStore
from fast_memory_adapter.service import AdapterService


BASE_URL = "https://n8n.example.com/api/v1"


def sample_document() -> Dict[str, Any]:
    return {
        "openapi": "3.0.0",
        "info": {"title": "n8n Public API", "version": "1.1.1"},
        "paths": {
            "/workflows": {
                "parameters": [{"name": "shared", "in": "query"}],
                "get": {
                    "summary": "Retrieve all workflows",
                    "description": "Retrieve all workflows from your instance.",
                    "tags": ["Workflow"],
                    "parameters": [{"name": "limit", "in": "query", "schema": {"type": "number"}}],
                    "responses": {"200": {"description": "Operation successful."}},
                },
                "post": {
                    "summary": "Create a workflow",
                    "tags": ["Workflow"],
                    "requestBody": {"content": {"application/json": {"schema": {"type": "object"}}}},
                    "responses": {"200": {"description": "A workflow object"}},
                },
            },
            "/workflows/{id}/activate": {
                "POST": {
                    "summary": "Activate and deploy a workflow",
                    "tags": ["Workflow"],
                },
            },
            "/executions": {
                "get": {
                    "summary": "Retrieve all executions",
                    "tags": ["Execution"],
                },
            },
        },
    }


class Upstream:
    """Records requests and answers them with a configurable handler."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, json={"data": [], "nextCursor": None}
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def catalog(tmp_path) -> EndpointCatalogStore:
    return EndpointCatalogStore(str(tmp_path / "db" / "api_spec.db"))


@pytest.fixture
def memory(tmp_path) -> FastMemoryStore:
    return FastMemoryStore(str(tmp_path / "db" / "fast_memory.db"))


@pytest.fixture
def ingestor(catalog) -> CatalogIngestor:
    return CatalogIngestor(catalog)


@pytest.fixture
def loaded_catalog(catalog, ingestor, document) -> EndpointCatalogStore:
    ingestor.ingest(document)
    return catalog


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def executor(upstream) -> RemoteApiExecutor:
    return RemoteApiExecutor(BASE_URL, "secret-key", transport=upstream.transport())


@pytest.fixture
def engine(catalog, memory, executor) -> ResolutionEngine:
    return ResolutionEngine(catalog, memory, executor)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        remote_api_base_url=BASE_URL,
        remote_api_key="secret-key",
        adapter_db_dir=str(tmp_path / "db"),
    )


@pytest.fixture
def service(settings, catalog, memory, engine, ingestor) -> AdapterService:
    return AdapterService(settings, catalog, memory, engine, ingestor)


@pytest.fixture
def document() -> Dict[str, Any]:
    return sample_document()
