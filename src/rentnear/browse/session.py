from __future__ import annotations

# Browse session: the one place that holds mutable state for a browse screen.
#
# The state itself is an immutable `BrowseState`; the session swaps in new values and
# keeps the latest nearby result. Nearby lookups are tagged with a generation ticket so a
# result computed for an older origin/radius/listing set is dropped (last write wins).

import logging
from dataclasses import dataclass
from typing import Sequence

from rentnear.browse.view import clear_selection, resolve_view, select_cluster
from rentnear.clustering.engine import compute_clusters, find_cluster
from rentnear.config.settings import Settings, get_settings
from rentnear.domain.models import (
    BaseFilters,
    BrowseState,
    BrowseView,
    Cluster,
    ClusterMode,
    Listing,
    Notice,
    ProximityResult,
    SortOption,
)
from rentnear.ingestion.geolocation import GeolocationError, GeolocationProvider
from rentnear.nearby.resolver import NearbyStore, resolve_nearby

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NearbyTicket:
    """Identifies one nearby lookup: the generation plus the inputs it was started for."""

    generation: int
    lat: float
    lon: float
    radius_m: float


class BrowseSession:
    """Browse-screen controller over an immutable `BrowseState`."""

    def __init__(
        self,
        listings: Sequence[Listing] = (),
        *,
        settings: Settings | None = None,
        state: BrowseState | None = None,
    ):
        self._settings = settings or get_settings()
        self._listings: list[Listing] = list(listings)
        self._state = state or BrowseState(
            radius_m=self._settings.nearby.default_radius_m,
            sort=self._settings.browse.default_sort,
        )
        self._generation = 0
        self._proximity: ProximityResult | None = None
        self.notices: list[Notice] = []

    @property
    def state(self) -> BrowseState:
        return self._state

    @property
    def listings(self) -> list[Listing]:
        return list(self._listings)

    @property
    def proximity(self) -> ProximityResult | None:
        return self._proximity

    def _notify(self, notice: Notice | None) -> None:
        if notice is not None:
            self.notices.append(notice)

    def _invalidate_nearby(self) -> None:
        # Any in-flight ticket becomes stale once the generation moves on.
        self._generation += 1
        self._proximity = None

    # State transitions

    def set_listings(self, listings: Sequence[Listing]) -> BrowseState:
        self._listings = list(listings)
        self._invalidate_nearby()
        return self._state

    def set_filters(self, filters: BaseFilters) -> BrowseState:
        self._state = self._state.model_copy(update={"filters": filters})
        return self._state

    def set_sort(self, sort: SortOption | str) -> BrowseState:
        self._state = self._state.model_copy(update={"sort": SortOption(sort)})
        return self._state

    def set_cluster_mode(self, mode: ClusterMode | str) -> BrowseState:
        self._state = self._state.model_copy(update={"cluster_mode": ClusterMode(mode)})
        return self._state

    def set_radius(self, radius_m: float) -> BrowseState:
        if float(radius_m) <= 0:
            raise ValueError("radius_m must be > 0")
        self._state = self._state.model_copy(update={"radius_m": float(radius_m)})
        self._invalidate_nearby()
        return self._state

    def disable_nearby(self) -> BrowseState:
        self._state = self._state.model_copy(update={"nearby_enabled": False})
        self._invalidate_nearby()
        return self._state

    def clusters(self) -> list[Cluster]:
        return compute_clusters(self._listings, self._state.cluster_mode)

    def select_cluster(self, cluster: Cluster | str) -> BrowseState:
        """Drill into a cluster given as a `Cluster` or by its key (looked up in the current mode)."""
        if isinstance(cluster, str):
            found = find_cluster(self.clusters(), cluster)
            if found is None:
                raise ValueError(f"Unknown cluster key '{cluster}' for mode '{self._state.cluster_mode.value}'")
            cluster = found
        self._state = select_cluster(self._state, cluster)
        self._invalidate_nearby()
        return self._state

    def clear_selection(self) -> BrowseState:
        self._state = clear_selection(self._state)
        return self._state

    # Location

    def request_location(self, provider: GeolocationProvider) -> BrowseState:
        """Acquire the caller's position and switch nearby mode on; on failure nearby is forced off."""
        cfg = self._settings.geolocation
        self._invalidate_nearby()
        self._state = self._state.model_copy(update={"origin": None})
        try:
            origin = provider.get_current_position(
                timeout_seconds=cfg.timeout_seconds,
                high_accuracy=cfg.high_accuracy,
                maximum_age_seconds=cfg.maximum_age_seconds,
            )
        except GeolocationError as exc:
            logger.warning("Geolocation failed (%s): %s", exc.code, exc.message)
            self._state = self._state.model_copy(update={"nearby_enabled": False})
            self._notify(
                Notice(
                    level="error",
                    title="Unable to get location",
                    message=exc.message or "Please enable location permissions.",
                )
            )
            return self._state

        self._state = self._state.model_copy(update={"origin": origin, "nearby_enabled": True})
        self._notify(Notice(level="info", title="Location enabled", message="Showing listings near you"))
        return self._state

    # Nearby lookups

    def begin_nearby(self) -> NearbyTicket | None:
        """Start a nearby lookup for the current inputs; None when nearby mode cannot run."""
        state = self._state
        if not state.nearby_enabled or state.origin is None:
            return None
        self._generation += 1
        return NearbyTicket(
            generation=self._generation,
            lat=state.origin.lat,
            lon=state.origin.lon,
            radius_m=state.radius_m,
        )

    def complete_nearby(self, ticket: NearbyTicket, result: ProximityResult) -> bool:
        """Store `result` if `ticket` is still the latest lookup. Returns False for stale results."""
        if ticket.generation != self._generation:
            logger.debug("Discarding stale nearby result (generation %s < %s)", ticket.generation, self._generation)
            return False
        self._proximity = result
        self._notify(result.notice)
        return True

    def refresh_nearby(self, store: NearbyStore | None = None) -> ProximityResult | None:
        """Run a nearby lookup for the current inputs and store it."""
        ticket = self.begin_nearby()
        if ticket is None:
            self._proximity = None
            return None
        result = resolve_nearby(self._listings, ticket.lat, ticket.lon, ticket.radius_m, store=store)
        self.complete_nearby(ticket, result)
        return result

    def view(self) -> BrowseView:
        return resolve_view(self._listings, self._state, self._proximity)
