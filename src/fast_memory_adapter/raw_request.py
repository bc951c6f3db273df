"""Parser for raw request strings of the form ``METHOD path[?query][ JSON-body]``.

Examples::

    GET /workflows?limit=5
    POST /workflows {"name": "New Workflow"}
    delete /workflows/12

The method is case-insensitive and must be a known HTTP method. The query
string decodes to a flat mapping in which the last occurrence of a key wins.
Everything after the whitespace that follows the path must be one JSON
value. Any violation raises :class:`InvalidInputError`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl

from .errors import InvalidInputError
from .models import HTTP_METHODS, ApiCall


FORMAT_HINT = "Use 'METHOD /path?query=val [JSON_BODY]'"


@dataclass(frozen=True)
class RawRequest:
    method: str
    path: str
    params: Dict[str, str]
    data: Any = None

    def to_call(self) -> ApiCall:
        return ApiCall(
            path=self.path,
            method=self.method,
            params=self.params or None,
            data=self.data,
        )


def parse_raw_request(raw_request: Optional[str]) -> RawRequest:
    text = (raw_request or "").strip()
    if not text:
        raise InvalidInputError(f"raw_request string is required. {FORMAT_HINT}")

    parts = text.split(None, 2)
    if len(parts) < 2:
        raise InvalidInputError(f"Invalid raw_request format: missing path. {FORMAT_HINT}")

    method = parts[0].upper()
    if method not in HTTP_METHODS:
        raise InvalidInputError(
            f"Invalid raw_request format: unknown HTTP method '{parts[0]}'. {FORMAT_HINT}"
        )

    path, params = _split_query(parts[1])
    if not path:
        raise InvalidInputError(f"Invalid raw_request format: missing path. {FORMAT_HINT}")

    data = _parse_body(parts[2]) if len(parts) == 3 else None
    return RawRequest(method=method, path=path, params=params, data=data)


def _split_query(path_and_query: str) -> tuple[str, Dict[str, str]]:
    path, sep, query_string = path_and_query.partition("?")
    if not sep:
        return path, {}
    return path, dict(parse_qsl(query_string, keep_blank_values=True))


def _parse_body(body: str) -> Any:
    try:
        return json.loads(body)
    except ValueError as exc:
        raise InvalidInputError(f"Invalid JSON body provided: {exc}") from exc
