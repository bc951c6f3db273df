"""Error taxonomy for the adapter.

Every failure that crosses a component boundary is one of these kinds.
Raw ``sqlite3`` and ``httpx`` exceptions are wrapped where they occur and
never reach the tool surface. The service turns any :class:`AdapterError`
into an error envelope via :meth:`AdapterError.to_payload`.

Hierarchy::

    AdapterError                 (internal_error)
    +-- InvalidInputError        (invalid_input)
    +-- NotFoundError            (not_found)
    +-- AuthError                (auth_error)
    +-- UpstreamError            (upstream_error)
    +-- StorageError             (storage_error)
    +-- UnsupportedOperationError (unsupported_operation)
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AdapterError(Exception):
    """Base class for adapter failures.

    Args:
        message: Human-readable description.
        method: HTTP method of the upstream call, when one was involved.
        path: API path of the upstream call, when one was involved.
        status_code: Upstream HTTP status, when a response was received.
        response_body: Upstream response body, when one was received.
    """

    kind: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        method: Optional[str] = None,
        path: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.method = method
        self.path = path
        self.status_code = status_code
        self.response_body = response_body

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.method is not None:
            payload["method"] = self.method
        if self.path is not None:
            payload["path"] = self.path
        if self.status_code is not None:
            payload["status_code"] = self.status_code
        if self.response_body is not None:
            payload["response_body"] = self.response_body
        return payload


class InvalidInputError(AdapterError):
    """Malformed or missing arguments, raw requests, or JSON bodies; upstream 4xx."""

    kind = "invalid_input"


class NotFoundError(AdapterError):
    """No catalog entry for a path+method, or upstream 404."""

    kind = "not_found"


class AuthError(AdapterError):
    """Upstream rejected the configured credentials (401/403)."""

    kind = "auth_error"


class UpstreamError(AdapterError):
    """Upstream 5xx, network failure, or timeout."""

    kind = "upstream_error"


class StorageError(AdapterError):
    """Local store read, write, or transaction failure."""

    kind = "storage_error"


class UnsupportedOperationError(AdapterError):
    """Unknown tool name."""

    kind = "unsupported_operation"
