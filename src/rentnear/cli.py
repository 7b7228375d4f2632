"""
RentNear CLI entrypoint.

Quick local inspection of the nearby resolver and the clustering engine without a UI.
Listings come from the local catalog file (`--catalog`, default from settings) or, with
`--store`, from the configured hosted store.
"""

from __future__ import annotations

import argparse
import json
from typing import Any

from rentnear.browse.session import BrowseSession
from rentnear.catalog.loader import load_listings
from rentnear.clustering.engine import compute_clusters
from rentnear.config.settings import Settings, get_settings
from rentnear.core.logging import configure_logging
from rentnear.domain.models import BaseFilters, ClusterMode, Listing, SortOption
from rentnear.ingestion.geolocation import StaticGeolocationProvider
from rentnear.ingestion.store_client import StoreClient
from rentnear.nearby.resolver import resolve_nearby


def _load(args: argparse.Namespace, settings: Settings) -> tuple[list[Listing], StoreClient | None]:
    if args.store:
        store = StoreClient(settings)
        return store.list_listings(), store
    path = args.catalog or settings.catalog.path
    return load_listings(path, status=settings.store.listing_status), None


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _fmt_listing(listing: Listing) -> str:
    place = listing.city or listing.pin_code or "?"
    price = f"{listing.rent_price:g}" if listing.rent_price is not None else "-"
    return f"{listing.product_name or listing.id} ({place}) price={price}"


def _cmd_nearby(args: argparse.Namespace) -> int:
    """Handle the `nearby` subcommand."""
    settings = get_settings()
    listings, store = _load(args, settings)
    radius = float(args.radius if args.radius is not None else settings.nearby.default_radius_m)

    result = resolve_nearby(listings, float(args.lat), float(args.lon), radius, store=store)

    if args.json:
        _print_json(result.model_dump(mode="json"))
        return 0

    print(f"{len(result.matches)} listings within {radius / 1000:g}km (source={result.source})")
    for i, match in enumerate(result.matches, start=1):
        print(f"{i:>3}. {match.distance_m / 1000:6.2f}km  {_fmt_listing(match.listing)}")
    if result.notice:
        print(f"{result.notice.title}: {result.notice.message}")
    return 0


def _cmd_clusters(args: argparse.Namespace) -> int:
    """Handle the `clusters` subcommand."""
    settings = get_settings()
    listings, _ = _load(args, settings)
    clusters = compute_clusters(listings, ClusterMode(args.mode))

    if args.json:
        _print_json([c.model_dump(mode="json") for c in clusters])
        return 0

    if not clusters:
        print("No clusters found.")
        return 0
    preview_size = settings.browse.cluster_preview_size
    for cluster in clusters:
        print(f"{cluster.label}  [{cluster.count}]")
        for listing in cluster.preview(preview_size):
            print(f"    - {_fmt_listing(listing)}")
    return 0


def _cmd_browse(args: argparse.Namespace) -> int:
    """Handle the `browse` subcommand (full view resolution, as the browse screen does it)."""
    settings = get_settings()
    listings, store = _load(args, settings)
    session = BrowseSession(listings, settings=settings)

    session.set_filters(
        BaseFilters(
            search=args.search or "",
            pin=args.pin or "",
            category=args.category or "",
            min_price=float(args.min_price),
            max_price=args.max_price,
        )
    )
    session.set_sort(args.sort)
    if args.radius is not None:
        session.set_radius(float(args.radius))

    if args.lat is not None or args.lon is not None:
        session.request_location(StaticGeolocationProvider(args.lat, args.lon))
        session.refresh_nearby(store)

    if args.cluster_mode != ClusterMode.none.value:
        session.set_cluster_mode(args.cluster_mode)
        if args.select_cluster is not None:
            session.select_cluster(args.select_cluster)

    view = session.view()
    if args.json:
        _print_json(
            {
                "state": session.state.model_dump(mode="json"),
                "view": view.model_dump(mode="json"),
                "notices": [n.model_dump(mode="json") for n in session.notices],
            }
        )
        return 0

    for notice in session.notices:
        print(f"[{notice.level}] {notice.title}: {notice.message}")
    if view.kind == "clusters":
        for cluster in view.clusters:
            print(f"{cluster.label}  [{cluster.count}]")
        return 0

    print(f"{view.kind}: {len(view.listings)} listings")
    for listing in view.listings:
        distance = view.distances.get(listing.id)
        prefix = f"{distance / 1000:6.2f}km  " if distance is not None else ""
        print(f"  {prefix}{_fmt_listing(listing)}")
    return 0


def _add_source_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--catalog", type=str, default=None, help="Listings JSON file (default from settings)")
    p.add_argument("--store", action="store_true", help="Load listings from the configured hosted store")
    p.add_argument("--json", action="store_true", help="Output machine-readable JSON")


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the RentNear CLI."""
    parser = argparse.ArgumentParser(prog="rentnear")
    parser.add_argument("--log-level", type=str, default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    near = sub.add_parser("nearby", help="List listings within a radius of a coordinate, nearest first.")
    near.add_argument("--lat", required=True, type=float)
    near.add_argument("--lon", required=True, type=float)
    near.add_argument("--radius", type=float, default=None, help="Meters (tiers: 2000, 5000, 10000, 20000)")
    _add_source_args(near)
    near.set_defaults(func=_cmd_nearby)

    clu = sub.add_parser("clusters", help="Group listings by city, PIN code or ~1km geo grid.")
    clu.add_argument("--mode", required=True, choices=[m.value for m in ClusterMode])
    _add_source_args(clu)
    clu.set_defaults(func=_cmd_clusters)

    br = sub.add_parser("browse", help="Resolve the browse view for filters, nearby and cluster options.")
    br.add_argument("--search", type=str, default=None)
    br.add_argument("--pin", type=str, default=None)
    br.add_argument("--category", type=str, default=None)
    br.add_argument("--min-price", type=float, default=0)
    br.add_argument("--max-price", type=float, default=None)
    br.add_argument("--sort", choices=[s.value for s in SortOption], default=SortOption.newest.value)
    br.add_argument("--lat", type=float, default=None, help="Enable nearby mode at this latitude")
    br.add_argument("--lon", type=float, default=None, help="Enable nearby mode at this longitude")
    br.add_argument("--radius", type=float, default=None)
    br.add_argument("--cluster-mode", choices=[m.value for m in ClusterMode], default=ClusterMode.none.value)
    br.add_argument("--select-cluster", type=str, default=None, help="Drill into the cluster with this key")
    _add_source_args(br)
    br.set_defaults(func=_cmd_browse)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m rentnear.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
