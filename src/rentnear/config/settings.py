# src/rentnear/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/rentnear/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `RENTNEAR_STORE_URL`, `RENTNEAR_STORE_KEY`)
- an external YAML file via `RENTNEAR_CONFIG_PATH`

Design rule:
- Tuning knobs live in YAML, not hard-coded in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any
from rentnear.core.env import load_dotenv_if_present

import yaml
from pydantic import BaseModel, Field, field_validator

from rentnear.domain.models import DEFAULT_MAX_PRICE, RADIUS_TIERS_M, SortOption


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `rentnear.config`."""
    text = resources.files("rentnear.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "RentNear"
    http_timeout_seconds: float = 15
    log_level: str = "INFO"


class CatalogSettings(BaseModel):
    path: str = "data/catalogs/listings.json"


class StoreSettings(BaseModel):
    base_url: str | None = None
    api_key: str | None = None
    nearby_rpc: str = "get_nearby_listings"
    listings_table: str = "listings"
    listing_status: str = "approved"


class NearbySettings(BaseModel):
    radius_tiers_m: list[int] = Field(default_factory=lambda: list(RADIUS_TIERS_M))
    default_radius_m: int = 5000

    @field_validator("radius_tiers_m")
    @classmethod
    def _positive_tiers(cls, tiers: list[int]) -> list[int]:
        if not tiers or any(int(t) <= 0 for t in tiers):
            raise ValueError("nearby.radius_tiers_m must be a non-empty list of positive radii")
        return sorted({int(t) for t in tiers})


class GeolocationSettings(BaseModel):
    timeout_seconds: float = Field(10, gt=0)
    high_accuracy: bool = True
    maximum_age_seconds: float = Field(60, ge=0)


class BrowseSettings(BaseModel):
    default_sort: SortOption = SortOption.newest
    max_price: float = DEFAULT_MAX_PRICE
    cluster_preview_size: int = Field(3, ge=0)
    categories: list[str] = Field(default_factory=list)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    nearby: NearbySettings = Field(default_factory=NearbySettings)
    geolocation: GeolocationSettings = Field(default_factory=GeolocationSettings)
    browse: BrowseSettings = Field(default_factory=BrowseSettings)

    def public_dict(self) -> dict[str, Any]:
        """Settings payload safe to hand to a browser (secrets redacted)."""
        payload = self.model_dump(mode="json")
        if payload.get("store", {}).get("api_key"):
            payload["store"]["api_key"] = "***"
        return payload


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small to avoid exposing unsafe overrides.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("RENTNEAR_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    catalog_path = os.getenv("RENTNEAR_CATALOG_PATH")
    if catalog_path:
        data.setdefault("catalog", {})["path"] = catalog_path

    store_url = os.getenv("RENTNEAR_STORE_URL")
    store_key = os.getenv("RENTNEAR_STORE_KEY")
    if store_url:
        data.setdefault("store", {})["base_url"] = store_url
    if store_key:
        data.setdefault("store", {})["api_key"] = store_key

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("RENTNEAR_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
