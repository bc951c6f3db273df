"""Execution layer for calls against the remote REST API."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx

from .errors import AdapterError, AuthError, InvalidInputError, NotFoundError, UpstreamError
from .logging import redact_payload

logger = logging.getLogger(__name__)


class RemoteApiExecutor:
    """Issues one HTTP request per call. Failures are raised, never retried."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 15,
        verify_ssl: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.verify_ssl = verify_ssl
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def execute(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        data: Any = None,
    ) -> Any:
        method = method.upper()
        url = self._build_url(path)
        query = self._build_query(params)
        content = json.dumps(data) if data is not None else None

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                verify=self.verify_ssl,
                transport=self.transport,
            ) as client:
                response = await client.request(
                    method,
                    url,
                    headers=self._headers(),
                    params=query,
                    content=content,
                )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise self._status_error(method, path, exc.response) from exc
        except httpx.TimeoutException as exc:
            logger.error("API call %s %s timed out: %s", method, path, exc)
            raise UpstreamError(
                f"Remote API request timed out for {method} {path} after {self.timeout_seconds}s.",
                method=method,
                path=path,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("API call %s %s failed: %s", method, path, exc)
            raise UpstreamError(
                f"Remote API request failed for {method} {path}. {exc}",
                method=method,
                path=path,
            ) from exc

        logger.info(
            "API call %s %s successful (status=%s params=%s)",
            method,
            path,
            response.status_code,
            redact_payload(query),
        )
        return self._decode(response)

    def _build_url(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return self.base_url + path

    def _build_query(self, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        for key, value in (params or {}).items():
            if value is None:
                continue
            if isinstance(value, (str, int, float, bool)):
                query[key] = value
            elif isinstance(value, (list, tuple)):
                query[key] = [str(item) for item in value]
            else:
                query[key] = json.dumps(value)
        return query

    def _decode(self, response: httpx.Response) -> Any:
        if not response.content:
            return {"status": "ok"}
        try:
            return response.json()
        except ValueError:
            return response.text

    def _status_error(self, method: str, path: str, response: httpx.Response) -> AdapterError:
        status = response.status_code
        body = self._decode(response)
        message = (
            f"Remote API error: {status} {response.reason_phrase}. "
            f"Response: {json.dumps(body) if not isinstance(body, str) else body}"
        )
        logger.error("API call %s %s failed with status %s", method, path, status)
        details = {"method": method, "path": path, "status_code": status, "response_body": body}
        if status in (401, 403):
            return AuthError(message + " Check your REMOTE_API_KEY.", **details)
        if status == 404:
            return NotFoundError(message, **details)
        if 400 <= status < 500:
            return InvalidInputError(message, **details)
        return UpstreamError(message, **details)
