"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- store/catalog entities (`Listing`)
- derived views (`ProximityResult`, `Cluster`, `BrowseView`)
- the immutable browse state threaded through the pure view functions (`BrowseState`)

Keeping these models in one place helps:
- validation (reject bad inputs early),
- typed refactors,
- consistent JSON output across CLI/API.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rentnear.core.geo import has_valid_coordinates

DEFAULT_MAX_PRICE = 1_000_000
RADIUS_TIERS_M = (2000, 5000, 10000, 20000)


class GeoPoint(BaseModel):
    """A geographic point in decimal degrees."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class ClusterMode(str, Enum):
    none = "none"
    city = "city"
    pin = "pin"
    geo = "geo"


class SortOption(str, Enum):
    newest = "newest"
    price_asc = "price_asc"
    price_desc = "price_desc"
    most_reviewed = "most_reviewed"
    top_rated = "top_rated"


class Listing(BaseModel):
    """A marketplace listing as stored by the hosted backend.

    Display fields beyond the ones below are kept as extras and passed through untouched.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    product_name: str = ""
    description: str | None = None
    category: str | None = None
    pin_code: str | None = None
    city: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    rent_price: float | None = None
    product_type: str = "rent"
    views: int = 0
    rating: float | None = None
    review_count: int = 0
    created_at: datetime | None = None
    status: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # Stores hand out integer or uuid ids; the core treats them as opaque strings.
        # str() matches how the store client keys remote rows (`str(raw["id"])`).
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("product_name", mode="before")
    @classmethod
    def _none_name(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("views", "review_count", mode="before")
    @classmethod
    def _none_count(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("product_type", mode="before")
    @classmethod
    def _none_product_type(cls, value: Any) -> Any:
        return "rent" if value is None else value

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _drop_non_numeric_coordinates(cls, value: Any) -> Any:
        # Malformed coordinates make the listing ineligible for geo views; they never fail loading.
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return value

    @property
    def has_coordinates(self) -> bool:
        return has_valid_coordinates(self.latitude, self.longitude)

    def location(self) -> GeoPoint | None:
        if not self.has_coordinates:
            return None
        return GeoPoint(lat=self.latitude, lon=self.longitude)


class NearbyMatch(BaseModel):
    """One listing within range plus its distance from the origin."""

    listing: Listing
    distance_m: float = Field(..., ge=0)


class Notice(BaseModel):
    """A user-facing message (toast) produced by an empty state or a failure."""

    level: Literal["info", "error"] = "info"
    title: str
    message: str


class ProximityResult(BaseModel):
    """Listings within `radius_m` of `origin`, ordered by ascending distance."""

    origin: GeoPoint
    radius_m: float
    source: Literal["remote", "fallback"]
    matches: list[NearbyMatch] = Field(default_factory=list)
    notice: Notice | None = None

    @property
    def listings(self) -> list[Listing]:
        return [m.listing for m in self.matches]

    def distances(self) -> dict[str, float]:
        return {m.listing.id: m.distance_m for m in self.matches}


class Cluster(BaseModel):
    key: str
    label: str
    count: int = Field(..., ge=0)
    items: list[Listing] = Field(default_factory=list)

    def preview(self, n: int = 3) -> list[Listing]:
        """First `n` items, used as representative previews on a cluster card."""
        return self.items[: max(0, int(n))]


class BaseFilters(BaseModel):
    """Search/PIN/category/price filters shared by every listing view."""

    model_config = ConfigDict(frozen=True)

    search: str = ""
    pin: str = ""
    category: str = ""
    min_price: float = Field(default=0, ge=0)
    # None means no upper bound; the filter bar slider tops out at DEFAULT_MAX_PRICE.
    max_price: float | None = Field(default=None, ge=0)

    def cleared(self) -> "BaseFilters":
        """Back to defaults: no search, PIN or category, and the full price range."""
        return BaseFilters()


class BrowseState(BaseModel):
    """Immutable view-state for the browse screen.

    Every transition returns a new value (`model_copy(update=...)`); nothing here is mutated in place.
    """

    model_config = ConfigDict(frozen=True)

    filters: BaseFilters = Field(default_factory=BaseFilters)
    sort: SortOption = SortOption.newest
    nearby_enabled: bool = False
    origin: GeoPoint | None = None
    radius_m: float = Field(default=5000, gt=0)
    cluster_mode: ClusterMode = ClusterMode.none
    selected_cluster_items: list[Listing] | None = None

    @property
    def has_selection(self) -> bool:
        return bool(self.selected_cluster_items)

    def active_filter_count(self) -> int:
        """Number of non-default filters, as shown on the filter bar badge."""
        f = self.filters
        return sum(
            [
                1 if f.search else 0,
                1 if f.pin else 0,
                1 if f.category else 0,
                1 if self.nearby_enabled else 0,
                1 if f.min_price > 0 else 0,
                1 if f.max_price is not None and f.max_price < DEFAULT_MAX_PRICE else 0,
                1 if self.sort != SortOption.newest else 0,
            ]
        )


class BrowseView(BaseModel):
    """The resolved set to render for a `BrowseState`."""

    kind: Literal["cluster_items", "clusters", "nearby", "listings"]
    listings: list[Listing] = Field(default_factory=list)
    clusters: list[Cluster] = Field(default_factory=list)
    distances: dict[str, float] = Field(default_factory=dict)
    notice: Notice | None = None
    meta: dict[str, Any] = Field(default_factory=dict)
