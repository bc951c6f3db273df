"""Load an OpenAPI JSON document into the adapter's endpoint catalog."""

from __future__ import annotations

import argparse
import os
from pathlib import Path

from fast_memory_adapter.catalog_store import EndpointCatalogStore
from fast_memory_adapter.errors import AdapterError
from fast_memory_adapter.ingest import CatalogIngestor
from fast_memory_adapter.logging import configure_logging


def main() -> None:
    parser = argparse.ArgumentParser(description="Load an OpenAPI spec into the endpoint catalog")
    parser.add_argument(
        "--spec",
        default=os.getenv("ADAPTER_OPENAPI_PATH", ""),
        help="Path to the OpenAPI JSON document",
    )
    parser.add_argument(
        "--db-dir",
        default=os.getenv("ADAPTER_DB_DIR", "db"),
        help="Directory holding api_spec.db (default: db)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("ADAPTER_LOG_LEVEL", "INFO"),
        help="Logging level",
    )

    args = parser.parse_args()
    configure_logging(args.log_level)
    if not args.spec:
        raise SystemExit("Spec path missing. Set --spec or ADAPTER_OPENAPI_PATH.")

    spec_path = Path(args.spec).expanduser().resolve()
    if not spec_path.exists():
        raise SystemExit(f"Spec file not found: {spec_path}")

    store = EndpointCatalogStore(os.path.join(args.db_dir, "api_spec.db"))
    try:
        summary = CatalogIngestor(store).ingest_file(spec_path)
    except AdapterError as exc:
        raise SystemExit(f"Load failed ({exc.kind}): {exc.message}")

    print(summary.message())
    print(f"Catalog now holds {store.count()} endpoints")


if __name__ == "__main__":
    main()
