"""State machine behind the map screen.

The screen is always in exactly one :class:`MapViewState`. The controller owns
the selected destination and the last known user position, drives the map
surface through a small protocol and asks the routing service for directions
through a task runner, so every transition can be exercised without a real
map, network or thread pool.
"""

from __future__ import annotations

import logging
from enum import Enum
from itertools import count
from typing import Callable, Optional, Protocol

from PyQt6.QtCore import QObject, pyqtSignal

from .utils.geo import Coordinate, EdgePadding, Location, MapRegion, Route
from .utils.pricing import fares_for, great_circle_meters
from .utils.workers import TaskRunner

logger = logging.getLogger(__name__)

DEFAULT_SPAN_DEGREES = 0.05
DEFAULT_ROUTE_PADDING = EdgePadding(top=64, left=32, bottom=500, right=32)


class MapViewState(Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    DESTINATION_CHOSEN = "destination_chosen"
    ROUTE_DRAWN = "route_drawn"


class MapSurface(Protocol):
    """Rendering operations the controller needs from the map widget."""

    def clear(self) -> None: ...

    def recenter(self, region: MapRegion) -> None: ...

    def show_user_location(self, coordinate: Coordinate) -> None: ...

    def add_destination_marker(self, location: Location) -> None: ...

    def draw_route(self, route: Route) -> None: ...

    def fit_route(self, route: Route, padding: EdgePadding) -> None: ...


RouteLookup = Callable[[Coordinate, Coordinate], Route]


def action_glyph(state: MapViewState) -> str:
    """Glyph for the floating action button: a menu in idle, back elsewhere."""
    return "☰" if state is MapViewState.IDLE else "←"


class MapStateController(QObject):
    """Owns the map interaction state and applies its side effects."""

    state_changed = pyqtSignal(object)
    destination_changed = pyqtSignal(object)
    route_ready = pyqtSignal(object)
    route_failed = pyqtSignal(str)
    notice = pyqtSignal(str, str)
    menu_requested = pyqtSignal()
    activity_event = pyqtSignal(str, str, str)

    def __init__(
        self,
        map_surface: MapSurface,
        route_lookup: RouteLookup,
        runner: TaskRunner,
        *,
        span_degrees: float = DEFAULT_SPAN_DEGREES,
        route_padding: EdgePadding = DEFAULT_ROUTE_PADDING,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.map_surface = map_surface
        self.route_lookup = route_lookup
        self.runner = runner
        self.span_degrees = span_degrees
        self.route_padding = route_padding

        self._state = MapViewState.IDLE
        self._destination: Optional[Location] = None
        self._user_location: Optional[Coordinate] = None
        self._route: Optional[Route] = None
        self._request_ids = count(1)
        self._pending_request: Optional[int] = None
        self._awaiting_location = False

    # Read-only view ------------------------------------------------------
    @property
    def state(self) -> MapViewState:
        return self._state

    @property
    def destination(self) -> Optional[Location]:
        return self._destination

    @property
    def user_location(self) -> Optional[Coordinate]:
        return self._user_location

    @property
    def route(self) -> Optional[Route]:
        return self._route

    @property
    def route_in_flight(self) -> bool:
        return self._pending_request is not None

    def trip_distance_meters(self) -> Optional[float]:
        """Routed distance when known, otherwise the straight-line distance."""
        if self._destination is None:
            return None
        if self._route is not None and self._route.distance_meters is not None:
            return self._route.distance_meters
        if self._user_location is None:
            return None
        return great_circle_meters(self._user_location, self._destination.coordinate)

    def fares(self):
        return fares_for(self.trip_distance_meters())

    # Transitions ---------------------------------------------------------
    def start(self) -> None:
        self._enter_idle()

    def activate_search(self) -> bool:
        """Open the address search; only the idle screen shows the activation pill."""
        if self._state is not MapViewState.IDLE:
            return False
        self._set_state(MapViewState.SEARCHING)
        return True

    def press_action_button(self) -> None:
        if self._state is MapViewState.IDLE:
            self.menu_requested.emit()
            return
        self.back()

    def back(self) -> None:
        """Return to idle from any state, discarding the destination."""
        self._enter_idle()

    def select_destination(self, location: Location) -> None:
        """Show *location* as the single destination and request a route to it."""
        self.map_surface.clear()
        if self._user_location is not None:
            self.map_surface.show_user_location(self._user_location)
        self._route = None
        self._pending_request = None
        self._awaiting_location = False
        self._destination = location
        self.destination_changed.emit(location)
        self._set_state(MapViewState.DESTINATION_CHOSEN)
        self.map_surface.add_destination_marker(location)
        self._request_route()

    def retry_route(self) -> bool:
        if self._state is not MapViewState.DESTINATION_CHOSEN or self._destination is None:
            return False
        if self._pending_request is not None:
            return False
        self._request_route()
        return True

    def update_user_location(self, coordinate: Coordinate) -> None:
        first_fix = self._user_location is None
        self._user_location = coordinate
        self.map_surface.show_user_location(coordinate)
        if self._state is MapViewState.IDLE and first_fix:
            self.map_surface.recenter(self._user_region(coordinate))
        if self._awaiting_location and self._state is MapViewState.DESTINATION_CHOSEN:
            self._awaiting_location = False
            self._request_route()

    # Route completion ----------------------------------------------------
    def handle_route_result(
        self, request_id: int, destination: Location, route: Route
    ) -> bool:
        """Apply a finished route lookup; returns ``False`` when it was stale."""
        if not self._is_current(request_id, destination):
            logger.debug("Ignoring stale route for %s", destination.title)
            return False
        self._pending_request = None
        self._route = route
        self.map_surface.draw_route(route)
        self.map_surface.fit_route(route, self.route_padding)
        self._set_state(MapViewState.ROUTE_DRAWN)
        self.route_ready.emit(route)
        minutes = max(round(route.expected_travel_time / 60), 1)
        self._emit_activity(
            "success",
            "Route ready",
            f"Route to {destination.title} drawn · about {minutes} min.",
        )
        return True

    def handle_route_error(self, request_id: int, destination: Location, message: str) -> bool:
        if not self._is_current(request_id, destination):
            logger.debug("Ignoring stale route failure for %s", destination.title)
            return False
        self._pending_request = None
        logger.warning("Route lookup to %s failed: %s", destination.title, message)
        detail = f"Couldn't find a route to {destination.title}: {message}"
        self.route_failed.emit(detail)
        self._emit_activity("error", "Route lookup", detail)
        return True

    # Internal helpers ----------------------------------------------------
    def _is_current(self, request_id: int, destination: Location) -> bool:
        return (
            request_id == self._pending_request
            and self._destination == destination
            and self._state is MapViewState.DESTINATION_CHOSEN
        )

    def _request_route(self) -> None:
        destination = self._destination
        if destination is None:
            return
        origin = self._user_location
        if origin is None:
            self._awaiting_location = True
            detail = "Waiting for your current location before drawing the route."
            self.notice.emit("warning", detail)
            self._emit_activity("warning", "Route lookup", detail)
            return
        request_id = next(self._request_ids)
        self._pending_request = request_id
        self._emit_activity("info", "Route lookup", f"Requesting a route to {destination.title}.")
        self.runner.submit(
            self.route_lookup,
            origin,
            destination.coordinate,
            on_finished=lambda route, rid=request_id, dest=destination: self.handle_route_result(
                rid, dest, route
            ),
            on_error=lambda exc, rid=request_id, dest=destination: self.handle_route_error(
                rid, dest, str(exc)
            ),
        )

    def _enter_idle(self) -> None:
        had_destination = self._destination is not None
        self._destination = None
        self._route = None
        self._pending_request = None
        self._awaiting_location = False
        self.map_surface.clear()
        if self._user_location is not None:
            self.map_surface.show_user_location(self._user_location)
            self.map_surface.recenter(self._user_region(self._user_location))
        if had_destination:
            self.destination_changed.emit(None)
        self._set_state(MapViewState.IDLE, force=True)

    def _user_region(self, coordinate: Coordinate) -> MapRegion:
        return MapRegion.around(coordinate, self.span_degrees)

    def _set_state(self, state: MapViewState, *, force: bool = False) -> None:
        if state is self._state and not force:
            return
        logger.debug("Map state %s -> %s", self._state.value, state.value)
        self._state = state
        self.state_changed.emit(state)

    def _emit_activity(self, severity: str, title: str, message: str) -> None:
        self.activity_event.emit(severity, title, message)
