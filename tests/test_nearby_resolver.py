import random

from rentnear.core.geo import GeoPoint as CoreGeoPoint, haversine_m
from rentnear.domain.models import GeoPoint, Listing
from rentnear.ingestion.store_client import NearbyRow
from rentnear.nearby.resolver import closest_distance_m, compute_fallback, resolve_nearby, try_remote

BANGALORE = (12.9716, 77.5946)


def _listing(listing_id: str, lat=None, lon=None, **kwargs) -> Listing:
    return Listing(id=listing_id, product_name=f"Item {listing_id}", latitude=lat, longitude=lon, **kwargs)


class StubStore:
    def __init__(self, rows=None, records=None, *, fail_query=False, fail_hydrate=False):
        self.rows = rows or []
        self.records = records or []
        self.fail_query = fail_query
        self.fail_hydrate = fail_hydrate
        self.calls: list[tuple] = []

    def find_nearby(self, lat, lng, radius_m):
        self.calls.append(("find_nearby", lat, lng, radius_m))
        if self.fail_query:
            raise RuntimeError("rpc not available")
        return self.rows

    def get_by_ids(self, ids):
        ids = list(ids)
        self.calls.append(("get_by_ids", ids))
        if self.fail_hydrate:
            raise RuntimeError("select failed")
        return [r for r in self.records if r.id in ids]


def test_bangalore_scenario_keeps_only_listing_within_radius():
    a = _listing("A", 12.9720, 77.5950)
    b = _listing("B", 13.05, 77.60)

    result = resolve_nearby([b, a], *BANGALORE, 5000)

    assert [m.listing.id for m in result.matches] == ["A"]
    assert result.matches[0].distance_m < 100
    assert result.source == "fallback"
    assert result.notice is None


def test_store_failure_falls_back_and_excludes_listings_without_coordinates():
    listings = [
        _listing("near2", 12.99, 77.60),
        _listing("nocoords1"),
        _listing("near1", 12.975, 77.595),
        _listing("nocoords2", None, 77.59),
    ]
    store = StubStore(fail_query=True)

    result = resolve_nearby(listings, *BANGALORE, 5000, store=store)

    assert result.source == "fallback"
    assert [m.listing.id for m in result.matches] == ["near1", "near2"]
    assert store.calls[0][0] == "find_nearby"


def test_remote_rows_are_hydrated_in_remote_order_with_remote_distances():
    records = [_listing("x", 12.98, 77.6), _listing("y", 12.97, 77.59), _listing("z", 12.99, 77.61)]
    rows = [NearbyRow(id="y", distance_m=10.0), NearbyRow(id="x", distance_m=900.0), NearbyRow(id="z", distance_m=2500.0)]
    store = StubStore(rows=rows, records=records)

    result = resolve_nearby([], *BANGALORE, 5000, store=store)

    assert result.source == "remote"
    assert [m.listing.id for m in result.matches] == ["y", "x", "z"]
    assert [m.distance_m for m in result.matches] == [10.0, 900.0, 2500.0]
    assert store.calls[1] == ("get_by_ids", ["y", "x", "z"])


def test_remote_rows_missing_from_hydration_are_dropped():
    store = StubStore(
        rows=[NearbyRow(id="gone", distance_m=5.0), NearbyRow(id="kept", distance_m=50.0)],
        records=[_listing("kept", 12.97, 77.59)],
    )
    result = try_remote(store, GeoPoint(lat=BANGALORE[0], lon=BANGALORE[1]), 2000)
    assert result is not None
    assert [listing.id for listing in result.listings] == ["kept"]
    assert result.matches[0].distance_m == 50.0


def test_empty_remote_result_triggers_fallback():
    listings = [_listing("a", 12.9720, 77.5950)]
    store = StubStore(rows=[])

    result = resolve_nearby(listings, *BANGALORE, 2000, store=store)

    assert result.source == "fallback"
    assert [m.listing.id for m in result.matches] == ["a"]
    assert [c[0] for c in store.calls] == ["find_nearby"]


def test_hydration_failure_triggers_fallback():
    listings = [_listing("a", 12.9720, 77.5950)]
    store = StubStore(rows=[NearbyRow(id="a", distance_m=60.0)], fail_hydrate=True)

    result = resolve_nearby(listings, *BANGALORE, 2000, store=store)

    assert result.source == "fallback"
    assert [m.listing.id for m in result.matches] == ["a"]


def test_fallback_matches_direct_haversine_filter_and_is_sorted():
    rng = random.Random(7)
    listings = []
    for i in range(200):
        if i % 10 == 0:
            listings.append(_listing(f"n{i}"))
            continue
        listings.append(_listing(f"l{i}", 12.9716 + rng.uniform(-0.2, 0.2), 77.5946 + rng.uniform(-0.2, 0.2)))
    listings.append(_listing("nan", float("nan"), 77.59))

    origin = CoreGeoPoint(lat=BANGALORE[0], lon=BANGALORE[1])
    for radius in (2000, 5000, 10000, 20000, 12345):
        result = resolve_nearby(listings, *BANGALORE, radius, store=StubStore(rows=[]))

        expected = {
            listing.id
            for listing in listings
            if listing.has_coordinates
            and haversine_m(origin, CoreGeoPoint(lat=listing.latitude, lon=listing.longitude)) <= radius
        }
        got = [m.listing.id for m in result.matches]
        assert set(got) == expected
        assert len(got) == len(expected)
        distances = [m.distance_m for m in result.matches]
        assert distances == sorted(distances)
        assert all(d <= radius for d in distances)
        assert not any(i.startswith("n") for i in got)


def test_empty_fallback_reports_closest_distance():
    listings = [_listing("b", 13.05, 77.60)]

    result = compute_fallback(listings, GeoPoint(lat=BANGALORE[0], lon=BANGALORE[1]), 2000)

    assert result.matches == []
    assert result.notice is not None
    assert result.notice.title == "No listings within radius"
    assert "within 2km" in result.notice.message
    assert "Closest listing is 8.7km away" in result.notice.message


def test_empty_fallback_reports_missing_location_data():
    result = compute_fallback([_listing("a"), _listing("b")], GeoPoint(lat=0, lon=0), 5000)

    assert result.matches == []
    assert result.notice is not None
    assert result.notice.title == "No listings have location data"


def test_closest_distance_ignores_listings_without_coordinates():
    origin = GeoPoint(lat=BANGALORE[0], lon=BANGALORE[1])
    assert closest_distance_m([_listing("a")], origin) is None
    d = closest_distance_m([_listing("a"), _listing("b", 12.9720, 77.5950)], origin)
    assert d is not None and d < 100


def test_non_positive_radius_returns_empty_result_without_store_calls():
    store = StubStore(fail_query=True)
    result = resolve_nearby([_listing("a", *BANGALORE)], *BANGALORE, 0, store=store)
    assert result.matches == []
    assert store.calls == []


def test_repeated_remote_ids_appear_once_at_nearest_distance():
    store = StubStore(
        rows=[NearbyRow(id="a", distance_m=20.0), NearbyRow(id="b", distance_m=300.0), NearbyRow(id="a", distance_m=400.0)],
        records=[_listing("a", 12.9718, 77.5947), _listing("b", 12.974, 77.596)],
    )

    result = resolve_nearby([], *BANGALORE, 5000, store=store)

    assert [(m.listing.id, m.distance_m) for m in result.matches] == [("a", 20.0), ("b", 300.0)]
    assert store.calls[1] == ("get_by_ids", ["a", "b"])
