"""
Hosted listing store client (PostgREST-style REST API).

This module is responsible only for:
- calling the `get_nearby_listings` remote procedure (ids + precomputed distances),
- hydrating ids into full listing records,
- loading the full approved listing set for the CLI/API.

It intentionally does not implement any nearby/clustering logic; see `rentnear.nearby`
and `rentnear.clustering` for that.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from pydantic import TypeAdapter, ValidationError

from rentnear.config.settings import Settings
from rentnear.core.http import get_json, post_json
from rentnear.domain.models import Listing

logger = logging.getLogger(__name__)

_LISTING_ADAPTER = TypeAdapter(Listing)


@dataclass(frozen=True)
class NearbyRow:
    """One row of the geospatial query: a listing id and its distance from the origin."""

    id: str
    distance_m: float


def _quote_in_value(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _parse_listings(payload: Any) -> list[Listing]:
    if not isinstance(payload, list):
        return []
    out: list[Listing] = []
    for raw in payload:
        if not isinstance(raw, dict):
            continue
        try:
            out.append(_LISTING_ADAPTER.validate_python(raw))
        except ValidationError as exc:
            logger.warning("Skipping malformed listing id=%s: %s", raw.get("id"), exc.error_count())
    return out


class StoreClient:
    """Reads listings from the hosted backend; every call is a fresh network request."""

    def __init__(self, settings: Settings, *, transport: Any = None):
        self._settings = settings
        self._transport = transport

    def _require_base_url(self) -> str:
        base_url = self._settings.store.base_url
        if not base_url:
            raise RuntimeError("Listing store is not configured. Set RENTNEAR_STORE_URL.")
        return base_url.rstrip("/")

    def _auth_headers(self) -> dict[str, str]:
        key = self._settings.store.api_key
        if not key:
            return {}
        return {"apikey": key, "Authorization": f"Bearer {key}"}

    def find_nearby(self, lat: float, lng: float, radius_m: float) -> list[NearbyRow]:
        """Run the store's geospatial query. Rows come back ordered by ascending distance."""
        url = f"{self._require_base_url()}/rest/v1/rpc/{self._settings.store.nearby_rpc}"
        payload = post_json(
            url,
            payload={"user_lat": float(lat), "user_lng": float(lng), "radius_meters": float(radius_m)},
            headers=self._auth_headers(),
            timeout_seconds=self._settings.app.http_timeout_seconds,
            transport=self._transport,
        )
        if not isinstance(payload, list):
            return []

        rows: list[NearbyRow] = []
        for raw in payload:
            if not isinstance(raw, dict) or raw.get("id") is None:
                continue
            try:
                distance = float(raw.get("distance_meters"))
            except (TypeError, ValueError):
                continue
            rows.append(NearbyRow(id=str(raw["id"]), distance_m=distance))
        return rows

    def get_by_ids(self, ids: Iterable[str]) -> list[Listing]:
        """Fetch full listing records for `ids` (order is not guaranteed by the store)."""
        wanted = [str(i) for i in ids]
        if not wanted:
            return []
        url = f"{self._require_base_url()}/rest/v1/{self._settings.store.listings_table}"
        params = {"select": "*", "id": f"in.({','.join(_quote_in_value(i) for i in wanted)})"}
        payload = get_json(
            url,
            params=params,
            headers=self._auth_headers(),
            timeout_seconds=self._settings.app.http_timeout_seconds,
            transport=self._transport,
        )
        return _parse_listings(payload)

    def list_listings(self, *, status: str | None = None) -> list[Listing]:
        """Load the full listing set (defaults to the configured approved status)."""
        url = f"{self._require_base_url()}/rest/v1/{self._settings.store.listings_table}"
        params = {"select": "*", "order": "created_at.desc"}
        effective_status = status if status is not None else self._settings.store.listing_status
        if effective_status:
            params["status"] = f"eq.{effective_status}"
        logger.info("Fetching listings from store status=%s", effective_status or "*")
        payload = get_json(
            url,
            params=params,
            headers=self._auth_headers(),
            timeout_seconds=self._settings.app.http_timeout_seconds,
            transport=self._transport,
        )
        return _parse_listings(payload)
