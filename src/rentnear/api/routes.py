"""
API routes.

Endpoints:
- GET  `/api/settings`: public settings for the web UI (store key redacted).
- POST `/api/nearby`: listings within a radius of an origin, nearest first.
- POST `/api/clusters`: city / PIN / geo-grid clusters over the full listing set.
- POST `/api/browse`: resolve the browse view for a full `BrowseState` (optionally drilling into a cluster).

Requests may carry their own `listings`; otherwise the configured store (or the local
catalog file when no store is configured) supplies the full set.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import NoReturn

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from rentnear.browse.session import BrowseSession
from rentnear.catalog.loader import load_listings
from rentnear.clustering.engine import compute_clusters
from rentnear.config.settings import get_settings
from rentnear.domain.models import (
    BrowseState,
    BrowseView,
    Cluster,
    ClusterMode,
    GeoPoint,
    Listing,
    Notice,
    ProximityResult,
)
from rentnear.ingestion.store_client import StoreClient
from rentnear.nearby.resolver import resolve_nearby

logger = logging.getLogger(__name__)

router = APIRouter()


class NearbyRequest(BaseModel):
    origin: GeoPoint
    radius_m: float = Field(5000, gt=0)
    listings: list[Listing] | None = None


class ClustersRequest(BaseModel):
    mode: ClusterMode
    listings: list[Listing] | None = None


class ClustersResponse(BaseModel):
    mode: ClusterMode
    clusters: list[Cluster]


class BrowseRequest(BaseModel):
    state: BrowseState = Field(default_factory=BrowseState)
    select_cluster: str | None = None
    clear_selection: bool = False
    listings: list[Listing] | None = None


class BrowseResponse(BaseModel):
    state: BrowseState
    view: BrowseView
    notices: list[Notice] = Field(default_factory=list)
    active_filters: int = 0


@lru_cache
def _store() -> StoreClient | None:
    settings = get_settings()
    if not settings.store.base_url:
        return None
    return StoreClient(settings)


def _source_listings() -> list[Listing]:
    """Load the full listing set (store when configured, else the local catalog)."""
    settings = get_settings()
    store = _store()
    if store is not None:
        return store.list_listings()
    return load_listings(settings.catalog.path, status=settings.store.listing_status)


def _listings_or_source(listings: list[Listing] | None) -> list[Listing]:
    return listings if listings is not None else _source_listings()


def _raise_http(exc: Exception) -> NoReturn:
    if isinstance(exc, ValueError):
        raise HTTPException(status_code=400, detail={"code": "VALIDATION_ERROR", "message": str(exc)}) from exc
    logger.exception("Request failed")
    raise HTTPException(status_code=500, detail={"code": "INTERNAL_ERROR", "message": str(exc)}) from exc


@router.get("/api/settings")
def get_public_settings() -> dict:
    """Return settings the UI needs (radius tiers, categories, geolocation knobs)."""
    return get_settings().public_dict()


@router.post("/api/nearby", response_model=ProximityResult)
def post_nearby(request: NearbyRequest) -> ProximityResult:
    """Resolve listings near `origin` (store query first, local Haversine scan as fallback)."""
    try:
        listings = _listings_or_source(request.listings)
        # Caller-supplied listings are resolved locally only; the store knows nothing about them.
        store = _store() if request.listings is None else None
        return resolve_nearby(listings, request.origin.lat, request.origin.lon, request.radius_m, store=store)
    except Exception as e:
        _raise_http(e)


@router.post("/api/clusters", response_model=ClustersResponse)
def post_clusters(request: ClustersRequest) -> ClustersResponse:
    """Group the full listing set by city, PIN or geo-grid cell."""
    try:
        listings = _listings_or_source(request.listings)
        return ClustersResponse(mode=request.mode, clusters=compute_clusters(listings, request.mode))
    except Exception as e:
        _raise_http(e)


@router.post("/api/browse", response_model=BrowseResponse)
def post_browse(request: BrowseRequest) -> BrowseResponse:
    """Resolve the browse view for a state, applying an optional drill-down or selection reset first."""
    try:
        listings = _listings_or_source(request.listings)
        session = BrowseSession(listings, state=request.state)
        if request.clear_selection:
            session.clear_selection()
        if request.select_cluster is not None:
            session.select_cluster(request.select_cluster)
        if session.state.nearby_enabled:
            session.refresh_nearby(_store() if request.listings is None else None)
        return BrowseResponse(
            state=session.state,
            view=session.view(),
            notices=session.notices,
            active_filters=session.state.active_filter_count(),
        )
    except Exception as e:
        _raise_http(e)
