"""Logging helpers with redaction."""

from __future__ import annotations

import logging
import re
import sys
from typing import Any, Dict, Optional


_SENSITIVE_KEYS = re.compile(r"(token|secret|api[_-]?key|password|authorization)", re.IGNORECASE)


def configure_logging(level: str) -> None:
    # stdout carries the MCP stdio protocol, so log records go to stderr.
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )


def redact_payload(payload: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if payload is None:
        return None
    redacted: Dict[str, Any] = {}
    for key, value in payload.items():
        if _SENSITIVE_KEYS.search(str(key)):
            redacted[key] = "***REDACTED***"
        elif isinstance(value, dict):
            redacted[key] = redact_payload(value)
        else:
            redacted[key] = value
    return redacted
