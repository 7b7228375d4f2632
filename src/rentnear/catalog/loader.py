"""
Listing catalog loader.

The catalog is a local JSON file (default: `data/catalogs/listings.json`), typically a
dump of the store's `listings` table. Either a bare array or `{"listings": [...]}` is
accepted. Records are validated into `Listing` models so the nearby/clustering code can
assume a consistent shape.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from rentnear.core.env import resolve_project_path
from rentnear.domain.models import Listing


_LISTINGS_ADAPTER = TypeAdapter(list[Listing])


def parse_listings(payload: Any) -> list[Listing]:
    """Validate a decoded JSON payload into listings."""
    if isinstance(payload, dict):
        payload = payload.get("listings", [])
    if not isinstance(payload, list):
        raise ValueError("Listing catalog must be a JSON array or an object with a 'listings' array.")
    return _LISTINGS_ADAPTER.validate_python(payload)


def load_listings(path: str | Path, *, status: str | None = None) -> list[Listing]:
    """Load and validate a listing catalog JSON file, optionally keeping one status only."""
    resolved = resolve_project_path(path)
    listings = parse_listings(json.loads(resolved.read_text(encoding="utf-8")))
    if status:
        listings = [listing for listing in listings if listing.status in (None, status)]
    return listings
