from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from rentnear.config.settings import get_settings
from rentnear.core.env import resolve_project_path
from rentnear.core.logging import configure_logging
from rentnear.domain.models import Listing
from rentnear.ingestion.store_client import StoreClient


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def coverage_summary(listings: list[Listing]) -> dict[str, int]:
    """How many listings can take part in each browse mode."""
    return {
        "listings": len(listings),
        "with_coordinates": sum(1 for listing in listings if listing.has_coordinates),
        "with_city": sum(1 for listing in listings if (listing.city or "").strip()),
        "with_pin_code": sum(1 for listing in listings if (listing.pin_code or "").strip()),
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Export listings from the hosted store into the local catalog JSON.")
    parser.add_argument("--out", default=None, help="Catalog path (default: settings catalog.path)")
    parser.add_argument("--status", default=None, help="Listing status to export (default: settings store.listing_status)")
    parser.add_argument("--all", action="store_true", help="Export every status")
    args = parser.parse_args()

    configure_logging()
    settings = get_settings()
    client = StoreClient(settings)
    listings = client.list_listings(status="" if args.all else args.status)

    out_path = resolve_project_path(args.out or settings.catalog.path)
    _write_json(out_path, [listing.model_dump(mode="json") for listing in listings])

    print("Wrote catalog:", out_path)
    for key, value in coverage_summary(listings).items():
        print(f"{key}: {value}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
