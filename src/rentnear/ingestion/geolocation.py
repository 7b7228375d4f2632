"""
Geolocation capability.

The browse screen asks the caller's device for its position. This module models that
collaborator as a small protocol so the session logic can be driven by a browser-supplied
position (API), fixed coordinates (CLI), or a test double.
"""

from __future__ import annotations

from typing import Literal, Protocol

from rentnear.core.geo import has_valid_coordinates
from rentnear.domain.models import GeoPoint

GeolocationErrorCode = Literal["permission_denied", "unavailable", "timeout", "unsupported"]


class GeolocationError(Exception):
    """The position could not be acquired."""

    def __init__(self, code: GeolocationErrorCode, message: str = ""):
        super().__init__(message or code.replace("_", " "))
        self.code = code
        self.message = message or code.replace("_", " ")


class GeolocationProvider(Protocol):
    def get_current_position(
        self,
        *,
        timeout_seconds: float,
        high_accuracy: bool,
        maximum_age_seconds: float,
    ) -> GeoPoint: ...


class StaticGeolocationProvider:
    """Serves a fixed position; `None` coordinates behave like a device without location services."""

    def __init__(self, lat: float | None, lon: float | None):
        self._lat = lat
        self._lon = lon

    def get_current_position(
        self,
        *,
        timeout_seconds: float,
        high_accuracy: bool,
        maximum_age_seconds: float,
    ) -> GeoPoint:
        if self._lat is None or self._lon is None:
            raise GeolocationError("unsupported", "Location services are not available.")
        if not has_valid_coordinates(self._lat, self._lon):
            raise GeolocationError("unavailable", "Reported position is not a valid coordinate.")
        try:
            return GeoPoint(lat=self._lat, lon=self._lon)
        except ValueError as exc:
            raise GeolocationError("unavailable", "Reported position is out of range.") from exc
