"""Tests for tool dispatch and the result envelope."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from fast_memory_adapter.tool_registry import TOOL_DEFINITIONS, ToolRegistry


def _call(service, name, arguments=None):
    async def scenario():
        result = await service.execute_tool(name, arguments)
        await service.engine.drain()
        return result

    return asyncio.run(scenario())


def _text(result):
    return result["content"][0]["text"]


def _json(result):
    return result["content"][0]["json"]


class TestRegistry:
    def test_all_tools_are_registered(self):
        names = {tool.name for tool in ToolRegistry().list_tools()}
        assert names == {
            "search_api_endpoints",
            "get_api_endpoint_details",
            "execute_api_call",
            "natural_language_api_search",
            "save_to_fast_memory",
            "list_fast_memory",
            "delete_from_fast_memory",
            "clear_fast_memory",
            "load_api_spec_from_json",
            "send_raw_api_request",
        }
        assert len(TOOL_DEFINITIONS) == len(names)


class TestDispatch:
    def test_unknown_tool_is_unsupported_operation(self, service):
        result = _call(service, "drop_database", {})
        assert result["is_error"] is True
        assert result["error"]["kind"] == "unsupported_operation"
        assert "Unknown tool: drop_database" in _text(result)

    def test_missing_required_argument_is_invalid_input(self, service):
        result = _call(service, "get_api_endpoint_details", {"path": "/workflows"})
        assert result["is_error"] is True
        assert result["error"]["kind"] == "invalid_input"
        assert "method" in result["error"]["message"]

    def test_unexpected_argument_is_invalid_input(self, service):
        result = _call(service, "clear_fast_memory", {"force": True})
        assert result["error"]["kind"] == "invalid_input"

    def test_not_found_endpoint_is_structured_error(self, service, loaded_catalog):
        result = _call(service, "get_api_endpoint_details", {"path": "/nope", "method": "get"})
        assert result["error"]["kind"] == "not_found"
        assert result["error"]["method"] == "GET"


class TestCatalogTools:
    def test_load_then_search_and_details(self, service, document, tmp_path):
        spec_file = tmp_path / "openapi.json"
        spec_file.write_text(json.dumps(document), encoding="utf-8")

        loaded = _call(service, "load_api_spec_from_json", {"json_file_path": str(spec_file)})
        assert _text(loaded) == "API Spec Load Complete. Added/Updated: 4, Failed: 0."

        found = _json(_call(service, "search_api_endpoints", {"query": "executions"}))
        assert [row["path"] for row in found] == ["/executions"]

        details = _json(_call(service, "get_api_endpoint_details", {"path": "/workflows", "method": "post"}))
        assert details["requestBody"]["content"]["application/json"]["schema"] == {"type": "object"}

    def test_load_missing_file_is_invalid_input(self, service, tmp_path):
        result = _call(service, "load_api_spec_from_json", {"json_file_path": str(tmp_path / "none.json")})
        assert result["error"]["kind"] == "invalid_input"


class TestExecutionTools:
    def test_execute_api_call_renders_save_hint(self, service, upstream):
        upstream.handler = lambda request: httpx.Response(200, json={"data": []})
        result = _call(service, "execute_api_call", {"path": "/workflows", "method": "GET"})
        assert "is_error" not in result
        assert result["meta"]["from_cache"] is False
        assert "\n\n---\nAPI call successful." in _text(result)

    def test_execute_api_call_auth_failure(self, service, upstream):
        upstream.handler = lambda request: httpx.Response(401, json={"message": "unauthorized"})
        result = _call(service, "execute_api_call", {"path": "/workflows", "method": "GET"})
        assert result["is_error"] is True
        assert result["error"]["kind"] == "auth_error"
        assert result["error"]["status_code"] == 401

    def test_raw_request_with_bad_json(self, service, upstream):
        result = _call(service, "send_raw_api_request", {"raw_request": "POST /workflows {bad json"})
        assert result["error"]["kind"] == "invalid_input"
        assert upstream.requests == []

    def test_save_then_execute_uses_fast_memory(self, service, upstream, memory):
        saved = _call(
            service,
            "save_to_fast_memory",
            {
                "natural_language_query": "list active workflows",
                "api_path": "/workflows",
                "api_method": "get",
                "api_params": {"active": "true"},
                "description": "Active workflows",
            },
        )
        assert "Saved/Updated fast memory entry" in _text(saved)

        result = _call(service, "execute_api_call", {"path": "/workflows", "method": "GET"})
        assert result["meta"]["from_cache"] is True
        assert _text(result).startswith("[Using query from Fast Memory: Active workflows]")
        assert memory.get(saved["meta"]["id"]).usage_count == 1


class TestFastMemoryTools:
    def test_natural_language_search_outcomes(self, service, loaded_catalog):
        catalog_hit = _call(service, "natural_language_api_search", {"query": "activate"})
        assert catalog_hit["meta"]["match"] == "catalog"
        assert _json(catalog_hit)["results"][0]["path"] == "/workflows/{id}/activate"

        no_match = _call(service, "natural_language_api_search", {"query": "credentials"})
        assert "is_error" not in no_match
        assert no_match["meta"]["match"] == "none"

    def test_list_delete_and_clear(self, service, memory):
        first = memory.save("one", "/a", "GET")
        memory.save("two", "/b", "GET")

        listed = _json(_call(service, "list_fast_memory", {}))
        assert [row["natural_language_query"] for row in listed] == ["two", "one"]

        deleted = _call(service, "delete_from_fast_memory", {"id": first.id})
        assert deleted["meta"]["deleted"] is True
        missing = _call(service, "delete_from_fast_memory", {"id": first.id})
        assert f"Fast memory entry with ID {first.id} not found." == _text(missing)

        cleared = _call(service, "clear_fast_memory", {})
        assert _text(cleared) == "Cleared 1 entries from fast memory."
        assert _json(_call(service, "list_fast_memory", {})) == []


@pytest.mark.parametrize("limit", [0, -1])
def test_limits_must_be_positive(service, limit):
    result = _call(service, "search_api_endpoints", {"query": "x", "limit": limit})
    assert result["error"]["kind"] == "invalid_input"
