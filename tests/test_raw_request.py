import pytest

from fast_memory_adapter.errors import InvalidInputError
from fast_memory_adapter.raw_request import parse_raw_request


class TestParseRawRequest:
    def test_get_with_query(self):
        request = parse_raw_request("GET /workflows?limit=5")
        assert request.method == "GET"
        assert request.path == "/workflows"
        assert request.params == {"limit": "5"}
        assert request.data is None

    def test_post_with_json_body(self):
        request = parse_raw_request('POST /workflows {"name":"x"}')
        assert request.method == "POST"
        assert request.path == "/workflows"
        assert request.params == {}
        assert request.data == {"name": "x"}

    def test_body_may_contain_spaces(self):
        request = parse_raw_request('  patch /workflows/1   {"name": "New Workflow", "active": true}  ')
        assert request.method == "PATCH"
        assert request.data == {"name": "New Workflow", "active": True}

    def test_query_last_value_wins_and_blanks_are_kept(self):
        request = parse_raw_request("GET /executions?status=error&status=success&cursor=")
        assert request.params == {"status": "success", "cursor": ""}

    def test_to_call_drops_empty_params(self):
        call = parse_raw_request("DELETE /workflows/1").to_call()
        assert call.params is None
        assert call.data is None

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "   ",
            "GET",
            "FETCH /workflows",
            "GET ?limit=5",
            "POST /workflows {bad json",
        ],
    )
    def test_malformed_requests(self, raw):
        with pytest.raises(InvalidInputError):
            parse_raw_request(raw)
