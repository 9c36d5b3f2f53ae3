"""Geographic value types shared by the map, search and routing layers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Coordinate":
        """Build a coordinate from Google style ``{"lat": .., "lng": ..}`` payloads."""
        return cls(float(data["lat"]), float(data["lng"]))

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class Location:
    """A named place on the map, e.g. the selected destination."""

    title: str
    coordinate: Coordinate


@dataclass(frozen=True)
class SearchCompletion:
    """One autocomplete suggestion; ``handle`` is the provider's place id."""

    title: str
    subtitle: str = ""
    handle: str = ""


@dataclass(frozen=True)
class Route:
    polyline: tuple[Coordinate, ...]
    expected_travel_time: float
    distance_meters: Optional[float] = None


@dataclass(frozen=True)
class MapRegion:
    center: Coordinate
    latitude_delta: float
    longitude_delta: float

    @classmethod
    def around(cls, center: Coordinate, span: float) -> "MapRegion":
        return cls(center, span, span)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Return ``(min_lng, max_lng, min_lat, max_lat)``."""
        half_lat = self.latitude_delta / 2
        half_lng = self.longitude_delta / 2
        return (
            self.center.longitude - half_lng,
            self.center.longitude + half_lng,
            self.center.latitude - half_lat,
            self.center.latitude + half_lat,
        )


@dataclass(frozen=True)
class EdgePadding:
    top: float = 0.0
    left: float = 0.0
    bottom: float = 0.0
    right: float = 0.0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EdgePadding":
        return cls(**{key: float(data.get(key, 0.0)) for key in ("top", "left", "bottom", "right")})


MAX_PADDING_FRACTION = 0.8


def _fit_padding(near: float, far: float, size: float) -> tuple[float, float]:
    """Shrink a padding pair proportionally so it covers at most part of *size*."""
    total = near + far
    limit = size * MAX_PADDING_FRACTION
    if total <= limit:
        return near, far
    scale = limit / total
    return near * scale, far * scale


def region_fitting(
    points: Sequence[Coordinate],
    padding: EdgePadding = EdgePadding(),
    viewport: tuple[float, float] = (1.0, 1.0),
    minimum_span: float = 0.002,
) -> MapRegion:
    """Return the smallest region showing every point inside the padded viewport.

    ``viewport`` is ``(width, height)`` in pixels and ``padding`` is expressed in
    the same unit; the free area left after padding holds the points. Padding
    wider or taller than the viewport allows is scaled down so the points keep
    a usable share of the screen.
    """

    if not points:
        raise ValueError("points must not be empty")

    min_lat = min(point.latitude for point in points)
    max_lat = max(point.latitude for point in points)
    min_lng = min(point.longitude for point in points)
    max_lng = max(point.longitude for point in points)
    lat_span = max(max_lat - min_lat, minimum_span)
    lng_span = max(max_lng - min_lng, minimum_span)

    width, height = max(viewport[0], 1.0), max(viewport[1], 1.0)
    left, right = _fit_padding(padding.left, padding.right, width)
    top, bottom = _fit_padding(padding.top, padding.bottom, height)
    usable_width = width - left - right
    usable_height = height - top - bottom
    degrees_per_px_x = lng_span / usable_width
    degrees_per_px_y = lat_span / usable_height

    total_lng = degrees_per_px_x * width
    total_lat = degrees_per_px_y * height
    # Shift the centre so the points sit in the middle of the unpadded area.
    center_lng = (min_lng + max_lng) / 2 + degrees_per_px_x * (right - left) / 2
    center_lat = (min_lat + max_lat) / 2 + degrees_per_px_y * (top - bottom) / 2
    return MapRegion(Coordinate(center_lat, center_lng), total_lat, total_lng)
