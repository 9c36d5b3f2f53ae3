"""Fare and ETA helpers for the ride-request sheet."""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from .geo import Coordinate

METERS_PER_MILE = 1609.34
EARTH_RADIUS_METERS = 6_371_000.0


class RideType(Enum):
    """Ride tiers offered on the request sheet.

    Each member carries ``(display name, base fare, rate per mile, seats)``.
    Declaration order is the order the tiers are shown in.
    """

    ECONOMY = ("Economy", 5.0, 1.5, 4)
    PREMIUM = ("Premium", 20.0, 2.0, 4)
    EXTRA_LARGE = ("Extra Large", 10.0, 1.75, 6)

    def __init__(self, label: str, base_fare: float, rate_per_mile: float, seats: int) -> None:
        self.label = label
        self.base_fare = base_fare
        self.rate_per_mile = rate_per_mile
        self.seats = seats

    @property
    def description(self) -> str:
        return f"{self.label} · up to {self.seats} riders"

    def compute_price(self, distance_meters: Optional[float]) -> float:
        return compute_price(self, distance_meters)


def compute_price(ride_type: RideType, distance_meters: Optional[float]) -> float:
    """Return the fare for *ride_type* over *distance_meters*.

    A missing, negative or non-finite distance prices at ``0.0``; before a
    destination is chosen there is nothing to charge for.
    """

    if distance_meters is None:
        return 0.0
    try:
        distance = float(distance_meters)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(distance) or distance < 0:
        return 0.0
    distance_miles = distance / METERS_PER_MILE
    return ride_type.base_fare + ride_type.rate_per_mile * distance_miles


def fares_for(distance_meters: Optional[float]) -> dict[RideType, float]:
    return {ride_type: compute_price(ride_type, distance_meters) for ride_type in RideType}


def to_currency(amount: float) -> str:
    """Format *amount* as US dollars with exactly two decimals (``$1,234.50``)."""

    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def great_circle_meters(origin: Coordinate, destination: Coordinate) -> float:
    """Haversine distance between two coordinates in meters."""

    lat1 = math.radians(origin.latitude)
    lat2 = math.radians(destination.latitude)
    d_lat = lat2 - lat1
    d_lng = math.radians(destination.longitude - origin.longitude)
    a = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(a)))


def format_clock(moment: datetime) -> str:
    # "%-I" is not portable to Windows, strip the zero padding by hand.
    return moment.strftime("%I:%M %p").lstrip("0")


def trip_times(
    now: datetime, expected_duration_seconds: Optional[float]
) -> tuple[str, str]:
    """Return formatted ``(pickup, drop-off)`` times for the trip info rows."""

    duration = max(float(expected_duration_seconds or 0.0), 0.0)
    dropoff = now + timedelta(seconds=duration)
    return format_clock(now), format_clock(dropoff)
