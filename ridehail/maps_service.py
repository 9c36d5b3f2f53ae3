"""Google Maps backed location, address search and routing services."""

from __future__ import annotations

import logging
import time
from typing import Any, List, Optional

import googlemaps
from googlemaps.convert import decode_polyline
from googlemaps.exceptions import ApiError, Timeout, TransportError
from PyQt6.QtCore import QObject, pyqtSignal

from .utils.geo import Coordinate, Location, Route, SearchCompletion
from .utils.workers import TaskRunner

logger = logging.getLogger(__name__)

_GOOGLE_ERRORS = (ApiError, TransportError, Timeout)
_DENIED_STATUSES = {403, "403", "REQUEST_DENIED", "accessNotConfigured", "keyInvalid"}
_QUOTA_REASONS = {"dailyLimitExceeded", "userRateLimitExceeded"}
_TRANSIENT_STATUSES = {"OVER_QUERY_LIMIT", "UNKNOWN_ERROR"}


class GoogleMapsError(RuntimeError):
    """Domain-specific error raised for Google Maps integration problems."""


class LocationPermissionError(GoogleMapsError):
    """Raised when the user's location may not be looked up."""


class TransientGoogleMapsError(GoogleMapsError):
    """A failure worth retrying: network trouble, timeouts or a busy backend."""


class GoogleMapsHandler:
    """Wrapper around the ``googlemaps`` client with helpful defaults.

    Implements the three collaborator capabilities the map screen depends on:
    address completion (:meth:`autocomplete`), completion resolution
    (:meth:`resolve`) and driving directions (:meth:`route`), plus a coarse
    network geolocation used as the device position (:meth:`geolocate`).
    """

    MAX_RETRIES = 3
    RETRY_DELAY_SECONDS = 0.75
    MIN_QUERY_LENGTH = 3

    def __init__(self, api_key: str, timeout: float = 10.0) -> None:
        self.enabled = bool(api_key)
        self.client = None
        if not self.enabled:
            return
        try:
            self.client = googlemaps.Client(
                key=api_key,
                timeout=timeout,
                retry_over_query_limit=False,
            )
        except (ApiError, TransportError, ValueError) as exc:
            raise GoogleMapsError(f"Unable to initialise Google Maps client: {exc}") from exc

    def _require_client(self):
        if not self.enabled or self.client is None:
            raise GoogleMapsError("Google Maps API key is not configured.")
        return self.client

    def autocomplete(self, query: str) -> List[SearchCompletion]:
        """Return address suggestions for the provided query fragment."""
        if not self.enabled or self.client is None:
            return []
        if len(query.strip()) < self.MIN_QUERY_LENGTH:
            return []
        try:
            predictions = self.client.places_autocomplete(
                input_text=query.strip(),
                language="en",
            )
        except _GOOGLE_ERRORS as exc:
            raise GoogleMapsError(f"Autocomplete request failed: {exc}") from exc
        return [self._completion_from_prediction(item) for item in predictions]

    @staticmethod
    def _completion_from_prediction(prediction: dict[str, Any]) -> SearchCompletion:
        formatting = prediction.get("structured_formatting") or {}
        title = formatting.get("main_text") or prediction.get("description", "")
        subtitle = formatting.get("secondary_text", "")
        return SearchCompletion(
            title=title,
            subtitle=subtitle,
            handle=prediction.get("place_id", ""),
        )

    def resolve(self, completion: SearchCompletion) -> Location:
        """Turn an autocomplete suggestion into a titled coordinate."""
        client = self._require_client()
        try:
            if completion.handle:
                response = client.place(
                    place_id=completion.handle,
                    fields=["name", "geometry/location"],
                    language="en",
                )
                result = response.get("result") or {}
            else:
                query = ", ".join(part for part in (completion.title, completion.subtitle) if part)
                matches = client.geocode(query)
                result = matches[0] if matches else {}
        except _GOOGLE_ERRORS as exc:
            raise GoogleMapsError(f"Place lookup failed: {exc}") from exc

        location = (result.get("geometry") or {}).get("location")
        if not location:
            raise GoogleMapsError(f"No coordinate found for '{completion.title}'.")
        return Location(
            title=completion.title or result.get("name", ""),
            coordinate=Coordinate.from_mapping(location),
        )

    def route(self, origin: Coordinate, destination: Coordinate) -> Route:
        """Return the driving route between two coordinates.

        Network errors, timeouts and an overloaded backend are retried before
        giving up; a missing route or a refused request is raised at once.
        """

        client = self._require_client()
        last_error: Optional[GoogleMapsError] = None
        for attempt in range(1, self.MAX_RETRIES + 1):
            try:
                return self._request_route(client, origin, destination)
            except TransientGoogleMapsError as exc:
                last_error = exc
                logger.warning("Directions attempt %d/%d failed: %s", attempt, self.MAX_RETRIES, exc)
                if attempt < self.MAX_RETRIES:
                    time.sleep(self.RETRY_DELAY_SECONDS)

        if last_error is not None:
            raise last_error
        raise GoogleMapsError("Route lookup failed for an unknown reason.")

    def _request_route(self, client, origin: Coordinate, destination: Coordinate) -> Route:
        try:
            routes = client.directions(
                origin=origin.as_tuple(),
                destination=destination.as_tuple(),
                mode="driving",
            )
        except (TransportError, Timeout) as exc:
            raise TransientGoogleMapsError(f"Directions request failed: {exc}") from exc
        except ApiError as exc:
            if exc.status in _TRANSIENT_STATUSES:
                raise TransientGoogleMapsError(f"Directions request failed: {exc}") from exc
            raise GoogleMapsError(f"Directions request failed: {exc}") from exc

        if not routes:
            raise GoogleMapsError("No route found to the selected destination.")

        best = routes[0]
        legs = best.get("legs") or []
        if not legs:
            raise GoogleMapsError("Directions returned a route without legs.")

        encoded = (best.get("overview_polyline") or {}).get("points")
        if not encoded:
            raise GoogleMapsError("Directions returned no route geometry.")
        polyline = tuple(Coordinate.from_mapping(point) for point in decode_polyline(encoded))

        duration = sum(float((leg.get("duration") or {}).get("value", 0)) for leg in legs)
        distance = sum(float((leg.get("distance") or {}).get("value", 0)) for leg in legs)
        return Route(
            polyline=polyline,
            expected_travel_time=duration,
            distance_meters=distance,
        )

    def geolocate(self) -> Coordinate:
        """Return the device position as estimated by the Geolocation API."""
        client = self._require_client()
        try:
            response = client.geolocate(consider_ip=True)
        except ApiError as exc:
            if exc.status in _DENIED_STATUSES and exc.message not in _QUOTA_REASONS:
                raise LocationPermissionError(f"Location access was denied: {exc}") from exc
            raise GoogleMapsError(f"Geolocation request failed: {exc}") from exc
        except (TransportError, Timeout) as exc:
            raise GoogleMapsError(f"Geolocation request failed: {exc}") from exc

        location = response.get("location")
        if not location:
            raise GoogleMapsError("Geolocation could not determine a position.")
        return Coordinate.from_mapping(location)


class LocationProvider(QObject):
    """Publishes the user's position once a fix is obtained.

    ``location_updated`` fires once per :meth:`start`; after that the provider
    stops until it is started again. ``permission_denied`` fires instead when
    location access is switched off or refused by the backend.
    """

    location_updated = pyqtSignal(object)
    permission_denied = pyqtSignal(str)
    lookup_failed = pyqtSignal(str)

    def __init__(
        self,
        maps_handler: GoogleMapsHandler,
        runner: TaskRunner,
        *,
        fallback: Optional[Coordinate] = None,
        enabled: bool = True,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.maps_handler = maps_handler
        self.runner = runner
        self.fallback = fallback
        self.enabled = enabled
        self._current: Optional[Coordinate] = None
        self._updating = False

    def current_location(self) -> Optional[Coordinate]:
        return self._current

    @property
    def is_updating(self) -> bool:
        return self._updating

    def start(self) -> None:
        if not self.enabled:
            self.permission_denied.emit(
                "Location access is turned off. Enable it in settings to see pickup estimates."
            )
            return
        if self._updating:
            return
        if not self.maps_handler.enabled:
            self._use_fallback("Google Maps is not configured.")
            return
        self._updating = True
        self.runner.submit(
            self.maps_handler.geolocate,
            on_finished=self._on_fix,
            on_error=self._on_error,
        )

    def _on_fix(self, coordinate: Coordinate) -> None:
        self._updating = False
        self._current = coordinate
        self.location_updated.emit(coordinate)

    def _on_error(self, exc: Exception) -> None:
        self._updating = False
        logger.warning("Location lookup failed: %s", exc)
        if isinstance(exc, LocationPermissionError):
            self.permission_denied.emit(str(exc))
            return
        self._use_fallback(str(exc))

    def _use_fallback(self, reason: str) -> None:
        if self.fallback is None:
            self.lookup_failed.emit(reason)
            return
        self.lookup_failed.emit(f"{reason} Using the configured fallback location.")
        self._on_fix(self.fallback)
