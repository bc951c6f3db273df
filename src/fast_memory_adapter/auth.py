"""Bearer-token authentication for the HTTP transports."""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp


logger = logging.getLogger(__name__)


@dataclass
class AuthContext:
    subject: str


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """Checks ``Authorization: Bearer <token>`` when a token is configured.

    Without a configured token every request is treated as anonymous.
    Preflight requests and the health check are never challenged.
    """

    def __init__(self, app: ASGIApp, token: Optional[str] = None) -> None:
        super().__init__(app)
        self.token = token

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[no-untyped-def]
        if request.method == "OPTIONS" or request.url.path.endswith("/health"):
            return await call_next(request)

        if not self.token:
            request.state.auth = AuthContext(subject="anonymous")
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        presented = auth_header.replace("Bearer", "", 1).strip()
        if presented and hmac.compare_digest(presented.encode("utf-8"), self.token.encode("utf-8")):
            request.state.auth = AuthContext(subject="service")
            return await call_next(request)

        logger.warning("Rejected request to %s: invalid or missing bearer token", request.url.path)
        return JSONResponse({"error": "Unauthorized"}, status_code=401)


def require_auth(request: Request) -> AuthContext:
    auth = getattr(request.state, "auth", None)
    if auth is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return auth
