from __future__ import annotations

# Nearby listing resolution.
#
# Two paths, tried in order:
# - remote: the hosted store's geospatial query (ids + distances), hydrated to full records;
# - fallback: a linear Haversine scan over the in-memory candidate set.
#
# Store failures never escape this module; they are logged and treated as "no rows".

import logging
from typing import Iterable, Protocol, Sequence

from rentnear.core.geo import EARTH_RADIUS_M, GeoPoint as CoreGeoPoint, haversine_m
from rentnear.domain.models import GeoPoint, Listing, NearbyMatch, Notice, ProximityResult

logger = logging.getLogger(__name__)


class NearbyStore(Protocol):
    """The two store capabilities the resolver needs (see `rentnear.ingestion.store_client`)."""

    def find_nearby(self, lat: float, lng: float, radius_m: float) -> Sequence: ...

    def get_by_ids(self, ids: Iterable[str]) -> list[Listing]: ...


def _distance_to(origin: CoreGeoPoint, listing: Listing) -> float:
    return haversine_m(origin, CoreGeoPoint(lat=listing.latitude, lon=listing.longitude), r=EARTH_RADIUS_M)


def listings_with_distance(listings: Iterable[Listing], origin: GeoPoint) -> list[tuple[Listing, float]]:
    """Pair every listing that has valid coordinates with its distance from `origin`."""
    o = CoreGeoPoint(lat=origin.lat, lon=origin.lon)
    return [(listing, _distance_to(o, listing)) for listing in listings if listing.has_coordinates]


def closest_distance_m(listings: Iterable[Listing], origin: GeoPoint) -> float | None:
    """Distance to the nearest listing with coordinates, or None when none has any."""
    distances = [d for _, d in listings_with_distance(listings, origin)]
    return min(distances) if distances else None


def empty_result_notice(listings: Sequence[Listing], origin: GeoPoint, radius_m: float) -> Notice:
    """Explain an empty nearby result so the user knows whether widening the radius helps."""
    closest = closest_distance_m(listings, origin)
    if closest is None:
        return Notice(
            level="info",
            title="No listings have location data",
            message="None of the current listings have coordinates, so nearby search cannot match any.",
        )
    return Notice(
        level="info",
        title="No listings within radius",
        message=(
            f"No listings found within {radius_m / 1000:g}km. "
            f"Closest listing is {closest / 1000:.1f}km away. Try increasing the radius."
        ),
    )


def try_remote(store: NearbyStore | None, origin: GeoPoint, radius_m: float) -> ProximityResult | None:
    """Run the store's geospatial query and hydrate it.

    Returns None when there is no store, the store fails, or the query has no rows;
    the caller then falls back to `compute_fallback`.
    """
    if store is None:
        return None
    try:
        rows = list(store.find_nearby(origin.lat, origin.lon, radius_m))
        logger.info("Remote nearby query returned %s rows (radius=%sm)", len(rows), radius_m)
        if not rows:
            return None

        ids = list(dict.fromkeys(str(r.id) for r in rows))
        hydrated = {listing.id: listing for listing in store.get_by_ids(ids)}
    except Exception as exc:
        logger.warning("Remote nearby query failed; using local fallback: %s", exc)
        return None

    matches: list[NearbyMatch] = []
    seen: set[str] = set()
    for row in rows:
        listing = hydrated.get(str(row.id))
        # Rows arrive nearest first, so the first row for a repeated id keeps its closest distance.
        if listing is None or listing.id in seen:
            continue
        seen.add(listing.id)
        matches.append(NearbyMatch(listing=listing, distance_m=max(0.0, float(row.distance_m))))

    # Every hydration came back empty: nothing usable, let the local scan decide.
    if not matches:
        return None
    return ProximityResult(origin=origin, radius_m=radius_m, source="remote", matches=matches)


def compute_fallback(listings: Sequence[Listing], origin: GeoPoint, radius_m: float) -> ProximityResult:
    """Linear Haversine scan: keep listings within `radius_m`, nearest first."""
    candidates = listings_with_distance(listings, origin)
    within = [(listing, d) for listing, d in candidates if d <= radius_m]
    # `sorted` is stable, so equidistant listings keep their source order.
    within = sorted(within, key=lambda pair: pair[1])
    logger.info(
        "Local nearby scan: %s of %s listings with coordinates within %sm",
        len(within),
        len(candidates),
        radius_m,
    )

    return ProximityResult(
        origin=origin,
        radius_m=radius_m,
        source="fallback",
        matches=[NearbyMatch(listing=listing, distance_m=d) for listing, d in within],
        notice=None if within else empty_result_notice(listings, origin, radius_m),
    )


def resolve_nearby(
    listings: Sequence[Listing],
    origin_lat: float,
    origin_lng: float,
    radius_m: float,
    *,
    store: NearbyStore | None = None,
) -> ProximityResult:
    """Resolve listings within `radius_m` meters of the origin, nearest first.

    Prefers the store's geospatial query; falls back to scanning `listings` when the
    store is missing, fails, or returns no rows. Never raises for store problems.
    """
    origin = GeoPoint(lat=origin_lat, lon=origin_lng)
    radius = float(radius_m)
    if radius <= 0:
        return ProximityResult(origin=origin, radius_m=radius, source="fallback", matches=[])

    remote = try_remote(store, origin, radius)
    if remote is not None:
        return remote
    return compute_fallback(listings, origin, radius)
