"""
Spatial clustering of listings.

Groups the full (unfiltered) listing set into labeled buckets for the grouped browse view:
- `city`: by trimmed city name (`Unknown` when missing),
- `pin`: by trimmed postal code (`—` when missing), labeled `PIN <code>`,
- `geo`: by a fixed 0.01 degree lat/lng grid cell (roughly 1.1 km north-south; cells get
  narrower east-west away from the equator). Listings without coordinates are left out.

Clusters are a derived view: recompute whenever the listings or the mode change.
"""

from __future__ import annotations

import math
from typing import Callable, Iterable

from rentnear.domain.models import Cluster, ClusterMode, Listing

UNKNOWN_CITY = "Unknown"
UNKNOWN_PIN = "—"


def _round_half_up(value: float) -> float:
    # Half-up, as Math.round does in the web client: 12.345 -> 12.35, -33.8688 -> -33.87.
    return math.floor(value * 100 + 0.5) / 100


def geo_cell_key(lat: float, lon: float) -> str:
    """Grid cell key for a coordinate, e.g. `12.97,77.59`."""
    lat_bucket = _round_half_up(lat) + 0.0
    lon_bucket = _round_half_up(lon) + 0.0
    return f"{lat_bucket:.2f},{lon_bucket:.2f}"


def _city_key(listing: Listing) -> str | None:
    return (listing.city or "").strip() or UNKNOWN_CITY


def _pin_key(listing: Listing) -> str | None:
    return (listing.pin_code or "").strip() or UNKNOWN_PIN


def _geo_key(listing: Listing) -> str | None:
    if not listing.has_coordinates:
        return None
    return geo_cell_key(listing.latitude, listing.longitude)


_KEY_FUNCS: dict[ClusterMode, Callable[[Listing], str | None]] = {
    ClusterMode.city: _city_key,
    ClusterMode.pin: _pin_key,
    ClusterMode.geo: _geo_key,
}


def _label(mode: ClusterMode, key: str) -> str:
    if mode == ClusterMode.pin:
        return f"PIN {key}"
    return key


def compute_clusters(listings: Iterable[Listing], mode: ClusterMode | str) -> list[Cluster]:
    """Group `listings` by `mode`, largest cluster first.

    Items keep their arrival order inside a cluster; clusters of equal size keep the
    order in which their key was first seen.
    """
    mode = ClusterMode(mode)
    key_func = _KEY_FUNCS.get(mode)
    if key_func is None:
        return []

    buckets: dict[str, list[Listing]] = {}
    for listing in listings:
        key = key_func(listing)
        if key is None:
            continue
        buckets.setdefault(key, []).append(listing)

    clusters = [
        Cluster(key=key, label=_label(mode, key), count=len(items), items=items)
        for key, items in buckets.items()
    ]
    clusters.sort(key=lambda c: c.count, reverse=True)
    return clusters


def find_cluster(clusters: Iterable[Cluster], key: str) -> Cluster | None:
    """Look a cluster up by its raw key (drill-down requests carry only the key)."""
    for cluster in clusters:
        if cluster.key == key:
            return cluster
    return None
