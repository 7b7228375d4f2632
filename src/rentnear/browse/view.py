"""
View resolution for the browse screen.

Given the full listing set, an immutable `BrowseState` and (optionally) the latest nearby
result, decide what to render. Precedence, highest first:

1. a drilled-down cluster's items (base-filtered),
2. the grouped cluster list when a cluster mode is active,
3. the nearby result (base-filtered, nearest first),
4. the full listing set (base-filtered, source order).

All functions here are pure; state transitions return new `BrowseState` values.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Sequence

from rentnear.clustering.engine import compute_clusters
from rentnear.domain.models import (
    BaseFilters,
    BrowseState,
    BrowseView,
    Cluster,
    ClusterMode,
    Listing,
    ProximityResult,
    SortOption,
)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def matches_filters(listing: Listing, filters: BaseFilters) -> bool:
    """Search (name OR description, case-insensitive), PIN substring, exact category, price range."""
    needle = filters.search.lower()
    if needle:
        name = (listing.product_name or "").lower()
        description = (listing.description or "").lower()
        if needle not in name and needle not in description:
            return False

    if filters.pin and filters.pin not in (listing.pin_code or ""):
        return False

    if filters.category and listing.category != filters.category:
        return False

    price = listing.rent_price or 0
    if price < filters.min_price:
        return False
    if filters.max_price is not None and price > filters.max_price:
        return False
    return True


def apply_filters(listings: Iterable[Listing], filters: BaseFilters) -> list[Listing]:
    return [listing for listing in listings if matches_filters(listing, filters)]


def _created_key(listing: Listing) -> datetime:
    created = listing.created_at
    if created is None:
        return _OLDEST
    if created.tzinfo is None:
        return created.replace(tzinfo=timezone.utc)
    return created


def sort_listings(listings: Sequence[Listing], sort: SortOption, *, keep_order_for_newest: bool = False) -> list[Listing]:
    """Order listings by `sort`; every ordering is stable."""
    items = list(listings)
    if sort == SortOption.newest:
        if keep_order_for_newest or not any(item.created_at for item in items):
            return items
        return sorted(items, key=_created_key, reverse=True)
    if sort == SortOption.price_asc:
        return sorted(items, key=lambda item: item.rent_price or 0)
    if sort == SortOption.price_desc:
        return sorted(items, key=lambda item: item.rent_price or 0, reverse=True)
    if sort == SortOption.most_reviewed:
        return sorted(items, key=lambda item: item.review_count, reverse=True)
    if sort == SortOption.top_rated:
        # Unrated listings go last.
        return sorted(items, key=lambda item: (item.rating is not None, item.rating or 0), reverse=True)
    return items


def select_cluster(state: BrowseState, cluster: Cluster) -> BrowseState:
    """Drill into `cluster`: show all of its items on a clean slate.

    Leaves the grouped view, turns nearby off and resets the base filters so the
    drill-down always starts with the complete cluster contents.
    """
    return state.model_copy(
        update={
            "selected_cluster_items": list(cluster.items) or None,
            "cluster_mode": ClusterMode.none,
            "nearby_enabled": False,
            "filters": state.filters.cleared(),
        }
    )


def clear_selection(state: BrowseState) -> BrowseState:
    """Leave the drill-down view and reset the base filters."""
    return state.model_copy(update={"selected_cluster_items": None, "filters": state.filters.cleared()})


def resolve_view(
    listings: Sequence[Listing],
    state: BrowseState,
    proximity: ProximityResult | None = None,
) -> BrowseView:
    """Resolve what to render for `state`. Clusters are always built from the full `listings`."""
    filters = state.filters

    if state.has_selection:
        items = apply_filters(state.selected_cluster_items or [], filters)
        return BrowseView(kind="cluster_items", listings=items, meta={"cluster_size": len(state.selected_cluster_items)})

    if state.cluster_mode != ClusterMode.none:
        clusters = compute_clusters(listings, state.cluster_mode)
        return BrowseView(kind="clusters", clusters=clusters, meta={"cluster_mode": state.cluster_mode.value})

    if state.nearby_enabled:
        if proximity is None:
            return BrowseView(kind="nearby", meta={"pending": True})
        distances = proximity.distances()
        items = apply_filters(proximity.listings, filters)
        items = sort_listings(items, state.sort, keep_order_for_newest=True)
        return BrowseView(
            kind="nearby",
            listings=items,
            distances={item.id: distances[item.id] for item in items if item.id in distances},
            notice=proximity.notice,
            meta={"source": proximity.source, "radius_m": proximity.radius_m},
        )

    items = sort_listings(apply_filters(listings, filters), state.sort)
    return BrowseView(kind="listings", listings=items)
