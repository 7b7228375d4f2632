from __future__ import annotations

import pytest

from rentnear.config.settings import NearbySettings, get_settings
from rentnear.domain.models import SortOption


@pytest.fixture
def fresh_settings():
    # `get_settings` is cached; clear it around tests that change the environment.
    get_settings.cache_clear()
    yield get_settings
    get_settings.cache_clear()


def test_packaged_defaults(fresh_settings, monkeypatch):
    for name in ("RENTNEAR_CONFIG_PATH", "RENTNEAR_LOG_LEVEL", "RENTNEAR_CATALOG_PATH"):
        monkeypatch.delenv(name, raising=False)

    settings = fresh_settings()

    assert settings.nearby.radius_tiers_m == [2000, 5000, 10000, 20000]
    assert settings.nearby.default_radius_m == 5000
    assert settings.geolocation.timeout_seconds == 10
    assert settings.geolocation.high_accuracy is True
    assert settings.browse.default_sort == SortOption.newest
    assert settings.browse.max_price == 1_000_000
    assert settings.store.nearby_rpc == "get_nearby_listings"
    assert settings.catalog.path == "data/catalogs/listings.json"


def test_env_overrides_store_and_catalog(fresh_settings, monkeypatch):
    monkeypatch.delenv("RENTNEAR_CONFIG_PATH", raising=False)
    monkeypatch.setenv("RENTNEAR_STORE_URL", "https://store.example.test")
    monkeypatch.setenv("RENTNEAR_STORE_KEY", "secret-key")
    monkeypatch.setenv("RENTNEAR_CATALOG_PATH", "/tmp/listings.json")
    monkeypatch.setenv("RENTNEAR_LOG_LEVEL", "DEBUG")

    settings = fresh_settings()

    assert settings.store.base_url == "https://store.example.test"
    assert settings.store.api_key == "secret-key"
    assert settings.catalog.path == "/tmp/listings.json"
    assert settings.app.log_level == "DEBUG"


def test_public_dict_redacts_store_key(fresh_settings, monkeypatch):
    monkeypatch.delenv("RENTNEAR_CONFIG_PATH", raising=False)
    monkeypatch.setenv("RENTNEAR_STORE_KEY", "secret-key")

    payload = fresh_settings().public_dict()

    assert payload["store"]["api_key"] == "***"
    assert "secret-key" not in str(payload)


def test_external_config_file(fresh_settings, monkeypatch, tmp_path):
    config = tmp_path / "rentnear.yaml"
    config.write_text(
        "nearby:\n  radius_tiers_m: [10000, 1000, 1000]\n  default_radius_m: 1000\nbrowse:\n  default_sort: price_asc\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("RENTNEAR_CONFIG_PATH", str(config))

    settings = fresh_settings()

    assert settings.nearby.radius_tiers_m == [1000, 10000]
    assert settings.nearby.default_radius_m == 1000
    assert settings.browse.default_sort == SortOption.price_asc
    # Sections missing from the file keep their model defaults.
    assert settings.geolocation.timeout_seconds == 10


def test_radius_tiers_must_be_positive():
    with pytest.raises(ValueError):
        NearbySettings(radius_tiers_m=[0, 5000])
    with pytest.raises(ValueError):
        NearbySettings(radius_tiers_m=[])
