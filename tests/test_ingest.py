import json
import sqlite3

import pytest

from fast_memory_adapter.errors import InvalidInputError, StorageError


class TestIngest:
    def test_every_method_is_retrievable(self, catalog, ingestor, document):
        summary = ingestor.ingest(document)

        assert summary.added == 4
        assert summary.failed == 0
        assert summary.title == "n8n Public API"
        assert catalog.count() == 4
        for path, methods in document["paths"].items():
            for method in methods:
                if method == "parameters":
                    continue
                endpoint = catalog.get_details(path, method.lower())
                assert endpoint.method == method.upper()

    def test_path_level_keys_are_not_endpoints(self, catalog, ingestor, document):
        ingestor.ingest(document)
        assert catalog.search("PARAMETERS", 10) == []

    def test_absent_fields_are_stored_as_null(self, catalog, ingestor, document):
        ingestor.ingest(document)
        conn = sqlite3.connect(catalog.db_path)
        row = conn.execute(
            "SELECT description, parameters, requestBody, responses FROM endpoints WHERE path = ?",
            ("/workflows/{id}/activate",),
        ).fetchone()
        conn.close()
        assert row == (None, None, None, None)

    def test_reingest_replaces_summary(self, catalog, ingestor, document):
        ingestor.ingest(document)
        document["paths"]["/workflows"]["get"]["summary"] = "List workflows"
        ingestor.ingest(document)

        assert catalog.count() == 4
        assert catalog.get_details("/workflows", "GET").summary == "List workflows"

    @pytest.mark.parametrize(
        "bad_document",
        [
            [],
            {"paths": {}},
            {"openapi": "3.0.0"},
            {"openapi": "3.0.0", "paths": []},
        ],
    )
    def test_rejects_documents_without_version_or_paths(self, ingestor, bad_document):
        with pytest.raises(InvalidInputError):
            ingestor.ingest(bad_document)

    def test_accepts_swagger_marker(self, catalog, ingestor):
        summary = ingestor.ingest({"swagger": "2.0", "paths": {"/pets": {"get": {"summary": "pets"}}}})
        assert summary.added == 1

    def test_row_failures_are_counted_not_raised(self, catalog, ingestor, document, monkeypatch):
        original = catalog.upsert

        def flaky_upsert(endpoint, conn=None):
            if endpoint.path == "/executions":
                raise StorageError("disk hiccup")
            return original(endpoint, conn=conn)

        monkeypatch.setattr(catalog, "upsert", flaky_upsert)
        document["paths"]["/broken"] = {"get": "not an object"}
        summary = ingestor.ingest(document)

        assert summary.added == 3
        assert summary.failed == 2
        assert catalog.count() == 3

    def test_transaction_failure_rolls_back(self, catalog, ingestor, document, monkeypatch):
        original = catalog.upsert
        calls = []

        def failing_upsert(endpoint, conn=None):
            calls.append(endpoint)
            original(endpoint, conn=conn)
            if len(calls) == 2:
                raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr(catalog, "upsert", failing_upsert)
        with pytest.raises(StorageError):
            ingestor.ingest(document)
        assert catalog.count() == 0


class TestIngestFile:
    def test_loads_json_file(self, catalog, ingestor, document, tmp_path):
        spec_file = tmp_path / "openapi.json"
        spec_file.write_text(json.dumps(document), encoding="utf-8")
        assert ingestor.ingest_file(spec_file).added == 4

    def test_missing_file_is_invalid_input(self, ingestor, tmp_path):
        with pytest.raises(InvalidInputError, match="Failed to read file"):
            ingestor.ingest_file(tmp_path / "missing.json")

    def test_malformed_json_is_invalid_input(self, ingestor, tmp_path):
        spec_file = tmp_path / "openapi.json"
        spec_file.write_text("{not json", encoding="utf-8")
        with pytest.raises(InvalidInputError, match="Failed to parse JSON"):
            ingestor.ingest_file(spec_file)
