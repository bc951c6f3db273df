"""OpenAPI document loader that fills the endpoint catalog."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Tuple, Union

from .catalog_store import EndpointCatalogStore
from .errors import InvalidInputError, StorageError
from .models import HTTP_METHODS, Endpoint, IngestSummary


logger = logging.getLogger(__name__)

_METHOD_KEYS = {method.lower() for method in HTTP_METHODS}


class CatalogIngestor:
    def __init__(self, store: EndpointCatalogStore) -> None:
        self.store = store

    def ingest_file(self, path: Union[str, Path]) -> IngestSummary:
        file_path = Path(path).expanduser()
        logger.info("Loading API spec from %s", file_path)
        try:
            text = file_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise InvalidInputError(f"Failed to read file at path: {file_path}. Error: {exc}") from exc
        return self.ingest_text(text, source=str(file_path))

    def ingest_text(self, text: str, source: str = "<text>") -> IngestSummary:
        try:
            document = json.loads(text)
        except ValueError as exc:
            raise InvalidInputError(f"Failed to parse JSON from {source}. Error: {exc}") from exc
        return self.ingest(document)

    def ingest(self, document: Any) -> IngestSummary:
        """Upsert every (path, method) in ``document`` inside one transaction.

        Rows that fail individually are counted in ``failed``; a failure of the
        transaction itself rolls everything back and raises StorageError.
        """
        title, version = self._validate(document)
        entries = list(self.extract_endpoints(document["paths"]))

        added = 0
        failed = 0
        try:
            with self.store.transaction() as conn:
                for path, method, operation in entries:
                    try:
                        endpoint = self._build_endpoint(path, method, operation)
                        self.store.upsert(endpoint, conn=conn)
                        added += 1
                    except (StorageError, InvalidInputError) as exc:
                        logger.error("Failed to insert endpoint %s %s: %s", method, path, exc)
                        failed += 1
        except StorageError:
            logger.error("Transaction failed during API spec load; rolled back")
            raise

        summary = IngestSummary(added=added, failed=failed, title=title, version=version)
        logger.info(summary.message())
        return summary

    def extract_endpoints(self, paths: Mapping[str, Any]) -> Iterable[Tuple[str, str, Any]]:
        for path, methods in paths.items():
            if not isinstance(methods, dict):
                logger.warning("Skipping path %s: expected an object, got %s", path, type(methods).__name__)
                continue
            for key, operation in methods.items():
                if str(key).lower() not in _METHOD_KEYS:
                    continue
                yield path, str(key).upper(), operation

    def _validate(self, document: Any) -> Tuple[Any, Any]:
        if not isinstance(document, dict):
            raise InvalidInputError("Invalid OpenAPI format: document must be a JSON object.")
        version_marker = document.get("openapi") or document.get("swagger")
        if not version_marker or not isinstance(document.get("paths"), dict):
            raise InvalidInputError("Invalid OpenAPI format: Missing 'openapi' version or 'paths'.")
        info = document.get("info") if isinstance(document.get("info"), dict) else {}
        logger.info("Parsed OpenAPI spec version %s, title: %s", version_marker, info.get("title"))
        return info.get("title"), info.get("version")

    def _build_endpoint(self, path: str, method: str, operation: Any) -> Endpoint:
        if not isinstance(operation, dict):
            raise InvalidInputError(f"Operation {method} {path} is not an object")
        return Endpoint(
            path=path,
            method=method,
            summary=operation.get("summary") or None,
            description=operation.get("description") or None,
            parameters=operation.get("parameters"),
            request_body=operation.get("requestBody"),
            responses=operation.get("responses"),
            tags=operation.get("tags"),
        )

