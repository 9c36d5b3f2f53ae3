"""PyQt6 map screen for requesting a ride.

The window shows a map centred on the user's position, lets them search for a
destination through Google Places autocomplete, draws the driving route and
offers a fare/ETA estimate for each ride tier. It demonstrates:

* Google Maps Places Autocomplete, Place Details, Directions and Geolocation
  usage via ``googlemaps``.
* A single enumerated map state deciding which panel is visible.
* A ``pyqtgraph`` canvas standing in for the map view.

API key setup
------------
Store your Google Maps API key in an environment variable named ``GOOGLE_MAPS_API_KEY``.
For local development you can create a ``.env`` file next to this script containing::

    GOOGLE_MAPS_API_KEY=your-secret-key

The key must have access to the "Places API", the "Directions API" and the
"Geolocation API". A key stored in the settings file takes precedence.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime
from itertools import count
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import numpy as np
import pyqtgraph as pg
from dotenv import load_dotenv
from PyQt6.QtCore import QRegularExpression, QTimer, Qt, pyqtSignal
from PyQt6.QtGui import (
    QBrush,
    QColor,
    QFont,
    QKeySequence,
    QRegularExpressionValidator,
    QShortcut,
)
from PyQt6.QtWidgets import (
    QApplication,
    QFrame,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSizePolicy,
    QSplitter,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from .location_search import LocationSearchModel
from .map_state import (
    DEFAULT_ROUTE_PADDING,
    DEFAULT_SPAN_DEGREES,
    MapStateController,
    MapViewState,
    action_glyph,
)
from .maps_service import GoogleMapsError, GoogleMapsHandler, LocationProvider
from .utils.geo import (
    Coordinate,
    EdgePadding,
    Location,
    MapRegion,
    Route,
    SearchCompletion,
    region_fitting,
)
from .utils.pricing import RideType, to_currency, trip_times
from .utils.workers import TaskRunner, ThreadPoolTaskRunner

pg.setConfigOptions(antialias=True, background=None, foreground="#f4f6fa")

logger = logging.getLogger(__name__)

APP_BUNDLE_ROOT = Path(__file__).resolve().parent
STYLE_FILE = APP_BUNDLE_ROOT / "resources" / "style.qss"


def _resolve_data_directory() -> Path:
    if sys.platform == "win32":
        base = Path(os.getenv("APPDATA", Path.home() / "AppData/Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library/Application Support"
    else:
        base = Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local/share"))
    return base / "RideHailMap"


APP_DATA_DIR = _resolve_data_directory()
SETTINGS_FILE = APP_DATA_DIR / "settings.json"


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            base[key] = _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


class SettingsManager:
    """Load and persist lightweight JSON application settings."""

    DEFAULTS: dict[str, Any] = {
        "google_maps_api_key": "",
        "location_enabled": True,
        "fallback_location": {"title": "San Francisco", "lat": 37.7749, "lng": -122.4194},
        "map_span_degrees": DEFAULT_SPAN_DEGREES,
        "route_edge_padding": {
            "top": DEFAULT_ROUTE_PADDING.top,
            "left": DEFAULT_ROUTE_PADDING.left,
            "bottom": DEFAULT_ROUTE_PADDING.bottom,
            "right": DEFAULT_ROUTE_PADDING.right,
        },
        "request_timeout_seconds": 10.0,
        "window_size": {"width": 1100, "height": 740},
        "activity_panel_visible": True,
    }

    def __init__(self, path: Path) -> None:
        self.path = path
        self.data = json.loads(json.dumps(self.DEFAULTS))  # deep copy
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            self.save()
            return
        try:
            loaded = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            self.save()
            return
        if isinstance(loaded, dict):
            self.data = _deep_merge(self.data, loaded)

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.data, indent=2), encoding="utf-8")

    def update(self, updates: dict[str, Any]) -> None:
        self.data = _deep_merge(self.data, updates)
        self.save()

    # Typed accessors -----------------------------------------------------
    def fallback_location(self) -> Optional[Coordinate]:
        raw = self.data.get("fallback_location")
        if not isinstance(raw, Mapping):
            return None
        try:
            return Coordinate.from_mapping(raw)
        except (KeyError, TypeError, ValueError):
            return None

    def route_padding(self) -> EdgePadding:
        raw = self.data.get("route_edge_padding")
        if not isinstance(raw, Mapping):
            return DEFAULT_ROUTE_PADDING
        try:
            return EdgePadding.from_mapping(raw)
        except (TypeError, ValueError):
            return DEFAULT_ROUTE_PADDING

    def span_degrees(self) -> float:
        try:
            span = float(self.data.get("map_span_degrees", DEFAULT_SPAN_DEGREES))
        except (TypeError, ValueError):
            return DEFAULT_SPAN_DEGREES
        return span if span > 0 else DEFAULT_SPAN_DEGREES


def _refresh_widget_style(widget: QWidget) -> None:
    style = widget.style()
    style.unpolish(widget)
    style.polish(widget)
    widget.update()


class InlineFeedbackBanner(QFrame):
    """Transient notice shown over the map, with an optional action button."""

    action_triggered = pyqtSignal()

    _ICONS: dict[str, str] = {
        "info": "ℹ",
        "success": "✔",
        "warning": "⚠",
        "error": "⛔",
    }

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setObjectName("InlineFeedbackBanner")
        self.setProperty("severity", "info")
        self.setVisible(False)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)

        self._messages: list[str] = []
        self._severity = "info"

        layout = QHBoxLayout(self)
        layout.setContentsMargins(16, 12, 14, 12)
        layout.setSpacing(12)

        self._icon_label = QLabel(self._ICONS["info"], self)
        self._icon_label.setObjectName("InlineFeedbackIcon")
        layout.addWidget(self._icon_label, 0, Qt.AlignmentFlag.AlignTop)

        self._message_label = QLabel("", self)
        self._message_label.setObjectName("InlineFeedbackMessage")
        self._message_label.setWordWrap(True)
        layout.addWidget(self._message_label, 1)

        self.action_button = QPushButton("", self)
        self.action_button.setObjectName("InlineFeedbackActionButton")
        self.action_button.setCursor(Qt.CursorShape.PointingHandCursor)
        self.action_button.setVisible(False)
        self.action_button.clicked.connect(self._on_action_clicked)
        layout.addWidget(self.action_button, 0, Qt.AlignmentFlag.AlignTop)

        self._close_button = QPushButton("×", self)
        self._close_button.setObjectName("InlineFeedbackCloseButton")
        self._close_button.setCursor(Qt.CursorShape.PointingHandCursor)
        self._close_button.setFlat(True)
        self._close_button.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self._close_button.clicked.connect(self.clear)
        layout.addWidget(self._close_button, 0, Qt.AlignmentFlag.AlignTop)

    def show_messages(
        self,
        messages: Sequence[str],
        *,
        severity: str = "info",
        action_label: str | None = None,
    ) -> None:
        cleaned = [line.strip() for line in messages if line and line.strip()]
        if not cleaned:
            self.clear()
            return
        self._messages = cleaned
        self._severity = severity
        self.setProperty("severity", severity)
        self._icon_label.setText(self._ICONS.get(severity, self._ICONS["info"]))
        self._message_label.setText("\n".join(cleaned))
        if action_label:
            self.action_button.setText(action_label)
            self.action_button.setVisible(True)
        else:
            self.action_button.setVisible(False)
        _refresh_widget_style(self)
        self.setVisible(True)

    def show_message(
        self, message: str, *, severity: str = "info", action_label: str | None = None
    ) -> None:
        self.show_messages([message], severity=severity, action_label=action_label)

    def clear(self) -> None:
        self._messages = []
        self._message_label.clear()
        self._severity = "info"
        self.setProperty("severity", "info")
        self.action_button.setVisible(False)
        _refresh_widget_style(self)
        self.setVisible(False)

    @property
    def messages(self) -> list[str]:
        return list(self._messages)

    @property
    def severity(self) -> str:
        return self._severity

    @property
    def has_action(self) -> bool:
        return not self.action_button.isHidden()

    def _on_action_clicked(self) -> None:
        self.clear()
        self.action_triggered.emit()


@dataclass
class NotificationEntry:
    entry_id: int
    created_at: datetime
    severity: str
    title: str
    message: str


class NotificationCenter(QWidget):
    """Activity stream listing the notices raised while using the map."""

    unread_changed = pyqtSignal(int)

    _SEVERITY_COLORS: dict[str, str] = {
        "info": "#61bdf2",
        "success": "#46c38d",
        "warning": "#f0c674",
        "error": "#ff8080",
    }

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setObjectName("NotificationCenter")
        self._entries: list[NotificationEntry] = []
        self._next_id = count(1)
        self._unread = 0

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(12)

        header_layout = QHBoxLayout()
        self._header_label = QLabel("Activity (0)")
        self._header_label.setProperty("role", "sectionLabel")
        header_layout.addWidget(self._header_label)
        header_layout.addStretch(1)
        self._unread_badge = QLabel("")
        self._unread_badge.setProperty("role", "hint")
        header_layout.addWidget(self._unread_badge)
        self._clear_button = QPushButton("Clear")
        self._clear_button.setEnabled(False)
        self._clear_button.clicked.connect(self.clear)
        header_layout.addWidget(self._clear_button)
        layout.addLayout(header_layout)

        self._list = QListWidget()
        self._list.setObjectName("NotificationList")
        self._list.itemSelectionChanged.connect(self._on_selection_changed)
        layout.addWidget(self._list, 2)

        self._detail = QTextEdit()
        self._detail.setReadOnly(True)
        self._detail.setObjectName("NotificationDetail")
        layout.addWidget(self._detail, 1)

    @property
    def entries(self) -> list[NotificationEntry]:
        return list(self._entries)

    @property
    def unread(self) -> int:
        return self._unread

    def add_entry(self, severity: str, title: str, message: str) -> None:
        entry = NotificationEntry(next(self._next_id), datetime.now(), severity, title, message)
        self._entries.insert(0, entry)
        item = QListWidgetItem(f"[{entry.created_at:%H:%M:%S}] {title}")
        item.setData(Qt.ItemDataRole.UserRole, entry)
        color_hex = self._SEVERITY_COLORS.get(severity)
        if color_hex:
            item.setForeground(QBrush(QColor(color_hex)))
        self._list.insertItem(0, item)
        self._unread += 1
        self.unread_changed.emit(self._unread)
        self._update_header()

    def mark_all_read(self) -> None:
        if self._unread:
            self._unread = 0
            self.unread_changed.emit(0)
            self._update_header()

    def clear(self) -> None:
        self._entries.clear()
        self._list.clear()
        self._detail.clear()
        self._unread = 0
        self.unread_changed.emit(0)
        self._update_header()

    def _update_header(self) -> None:
        self._header_label.setText(f"Activity ({len(self._entries)})")
        self._unread_badge.setText(f"Unread: {self._unread}" if self._unread else "")
        self._clear_button.setEnabled(bool(self._entries))

    def _on_selection_changed(self) -> None:
        item = self._list.currentItem()
        entry = item.data(Qt.ItemDataRole.UserRole) if item is not None else None
        if not isinstance(entry, NotificationEntry):
            self._detail.clear()
            return
        self._detail.setPlainText(
            f"{entry.severity.title()} · {entry.created_at:%Y-%m-%d %H:%M:%S}\n"
            f"Source: {entry.title}\n\n{entry.message}"
        )


class MapCanvas(pg.PlotWidget):
    """Longitude/latitude plot acting as the map view."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent=parent)
        self.setObjectName("MapCanvas")
        self.user_location: Optional[Coordinate] = None
        self.destination: Optional[Location] = None
        self.route: Optional[Route] = None
        self.current_region: Optional[MapRegion] = None

        plot_item = self.getPlotItem()
        plot_item.setMenuEnabled(False)
        plot_item.hideButtons()
        plot_item.hideAxis("left")
        plot_item.hideAxis("bottom")
        plot_item.showGrid(x=True, y=True, alpha=0.08)
        plot_item.getViewBox().setBackgroundColor(QColor("#101a2b"))

        self._route_item = pg.PlotDataItem(pen=pg.mkPen(QColor("#3d8bfd"), width=6))
        self._user_item = pg.ScatterPlotItem(
            size=14, brush=pg.mkBrush("#35c4c7"), pen=pg.mkPen("#ffffff", width=2)
        )
        self._destination_item = pg.ScatterPlotItem(
            size=16, symbol="s", brush=pg.mkBrush("#0b0f16"), pen=pg.mkPen("#ffffff", width=2)
        )
        self._destination_label = pg.TextItem("", anchor=(0.5, 1.6), color="#f4f6fa")
        for item in (self._route_item, self._user_item, self._destination_item, self._destination_label):
            plot_item.addItem(item)

    def clear(self) -> None:  # type: ignore[override]
        """Remove the destination marker and route overlay."""
        self.destination = None
        self.route = None
        self._route_item.setData([], [])
        self._destination_item.clear()
        self._destination_label.setText("")

    def recenter(self, region: MapRegion) -> None:
        min_lng, max_lng, min_lat, max_lat = region.bounds
        self.current_region = region
        self.setRange(xRange=(min_lng, max_lng), yRange=(min_lat, max_lat), padding=0)

    def show_user_location(self, coordinate: Coordinate) -> None:
        self.user_location = coordinate
        self._user_item.setData([coordinate.longitude], [coordinate.latitude])

    def add_destination_marker(self, location: Location) -> None:
        self.destination = location
        coordinate = location.coordinate
        self._destination_item.setData([coordinate.longitude], [coordinate.latitude])
        self._destination_label.setText(location.title)
        self._destination_label.setPos(coordinate.longitude, coordinate.latitude)

    def draw_route(self, route: Route) -> None:
        self.route = route
        lngs = np.array([point.longitude for point in route.polyline], dtype=float)
        lats = np.array([point.latitude for point in route.polyline], dtype=float)
        self._route_item.setData(lngs, lats)

    def fit_route(self, route: Route, padding: EdgePadding) -> None:
        if not route.polyline:
            return
        viewport = (float(max(self.width(), 1)), float(max(self.height(), 1)))
        self.recenter(region_fitting(route.polyline, padding, viewport))


class LocationSearchActivationView(QPushButton):
    """Pill shown on the idle map; clicking it opens the address search."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__("■   Where to?", parent)
        self.setObjectName("LocationSearchActivation")
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setMinimumHeight(50)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)


class LocationSearchView(QFrame):
    """Address entry plus the live list of completions."""

    query_edited = pyqtSignal(str)
    completion_chosen = pyqtSignal(object)

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setObjectName("LocationSearchView")

        self.start_input = QLineEdit(self)
        self.start_input.setPlaceholderText("Current location")
        self.start_input.setReadOnly(True)

        self.destination_input = QLineEdit(self)
        self.destination_input.setPlaceholderText("Where to?")
        address_pattern = QRegularExpression(r"^[^\n]{0,120}$")
        self.destination_input.setValidator(QRegularExpressionValidator(address_pattern, self))
        self.destination_input.textChanged.connect(self.query_edited.emit)

        self.results_list = QListWidget(self)
        self.results_list.setObjectName("LocationSearchResults")
        self.results_list.itemClicked.connect(self._on_item_clicked)
        self.results_list.itemActivated.connect(self._on_item_clicked)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 12, 16, 12)
        layout.setSpacing(8)
        layout.addWidget(self.start_input)
        layout.addWidget(self.destination_input)
        layout.addWidget(self.results_list, 1)

    def set_start_label(self, text: str) -> None:
        self.start_input.setText(text)

    def set_results(self, results: list[SearchCompletion]) -> None:
        self.results_list.clear()
        for completion in results:
            text = completion.title
            if completion.subtitle:
                text = f"{completion.title}\n{completion.subtitle}"
            item = QListWidgetItem(text)
            item.setData(Qt.ItemDataRole.UserRole, completion)
            self.results_list.addItem(item)

    def reset(self) -> None:
        self.destination_input.blockSignals(True)
        self.destination_input.clear()
        self.destination_input.blockSignals(False)
        self.results_list.clear()

    def _on_item_clicked(self, item: QListWidgetItem) -> None:
        completion = item.data(Qt.ItemDataRole.UserRole)
        if isinstance(completion, SearchCompletion):
            self.completion_chosen.emit(completion)


class MapViewActionButton(QPushButton):
    """Round button in the top-left corner: menu while idle, back otherwise."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(action_glyph(MapViewState.IDLE), parent)
        self.setObjectName("MapViewActionButton")
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setFixedSize(48, 48)

    def set_state(self, state: MapViewState) -> None:
        self.setText(action_glyph(state))
        self.setToolTip("Show activity" if state is MapViewState.IDLE else "Back")


class RideTypeCard(QFrame):
    """Selectable tile showing one ride tier and its price."""

    clicked = pyqtSignal(object)

    def __init__(self, ride_type: RideType, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.ride_type = ride_type
        self.setProperty("card", True)
        self.setProperty("selected", False)
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setFixedSize(132, 110)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(10, 10, 10, 10)
        layout.setSpacing(4)
        self.name_label = QLabel(ride_type.label, self)
        self.name_label.setProperty("role", "metricTitle")
        self.price_label = QLabel("—", self)
        self.price_label.setProperty("role", "metricValue")
        self.seats_label = QLabel(f"{ride_type.seats} seats", self)
        self.seats_label.setProperty("role", "hint")
        layout.addWidget(self.name_label)
        layout.addWidget(self.price_label)
        layout.addWidget(self.seats_label)
        layout.addStretch(1)

    def set_price(self, amount: float) -> None:
        self.price_label.setText(to_currency(amount))

    def set_selected(self, selected: bool) -> None:
        self.setProperty("selected", selected)
        _refresh_widget_style(self)

    def is_selected(self) -> bool:
        return bool(self.property("selected"))

    def mousePressEvent(self, event) -> None:  # type: ignore[override]
        self.clicked.emit(self.ride_type)
        super().mousePressEvent(event)


class RideRequestView(QFrame):
    """Bottom sheet with trip times, ride tiers and the confirm button."""

    ride_confirmed = pyqtSignal(object, float)

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setObjectName("RideRequestView")
        self.selected_ride_type = RideType.ECONOMY
        self._fares: dict[RideType, float] = {}

        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 10, 16, 16)
        layout.setSpacing(10)

        handle = QFrame(self)
        handle.setObjectName("SheetHandle")
        handle.setFixedSize(48, 6)
        layout.addWidget(handle, 0, Qt.AlignmentFlag.AlignHCenter)

        trip_grid = QGridLayout()
        trip_grid.setHorizontalSpacing(12)
        trip_grid.setVerticalSpacing(14)
        self.pickup_label = QLabel("Current location", self)
        self.pickup_label.setProperty("role", "hint")
        self.pickup_time_label = QLabel("", self)
        self.pickup_time_label.setProperty("role", "hint")
        self.destination_label = QLabel("", self)
        self.destination_label.setProperty("role", "sectionLabel")
        self.dropoff_time_label = QLabel("", self)
        self.dropoff_time_label.setProperty("role", "hint")
        trip_grid.addWidget(QLabel("●", self), 0, 0)
        trip_grid.addWidget(self.pickup_label, 0, 1)
        trip_grid.addWidget(self.pickup_time_label, 0, 2, Qt.AlignmentFlag.AlignRight)
        trip_grid.addWidget(QLabel("■", self), 1, 0)
        trip_grid.addWidget(self.destination_label, 1, 1)
        trip_grid.addWidget(self.dropoff_time_label, 1, 2, Qt.AlignmentFlag.AlignRight)
        trip_grid.setColumnStretch(1, 1)
        layout.addLayout(trip_grid)

        suggested = QLabel("SUGGESTED RIDES", self)
        suggested.setProperty("role", "sectionLabel")
        layout.addWidget(suggested)

        cards_row = QHBoxLayout()
        cards_row.setSpacing(12)
        self.cards: dict[RideType, RideTypeCard] = {}
        for ride_type in RideType:
            card = RideTypeCard(ride_type, self)
            card.clicked.connect(self.select_ride_type)
            self.cards[ride_type] = card
            cards_row.addWidget(card)
        cards_row.addStretch(1)
        layout.addLayout(cards_row)

        payment_row = QHBoxLayout()
        payment_row.setSpacing(12)
        card_brand = QLabel("Visa", self)
        card_brand.setObjectName("PaymentBrand")
        payment_row.addWidget(card_brand)
        payment_row.addWidget(QLabel("**** 1234", self))
        payment_row.addStretch(1)
        payment_row.addWidget(QLabel("›", self))
        layout.addLayout(payment_row)

        self.confirm_button = QPushButton("CONFIRM RIDE", self)
        self.confirm_button.setObjectName("ConfirmRideButton")
        self.confirm_button.setMinimumHeight(50)
        self.confirm_button.clicked.connect(self._on_confirm_clicked)
        layout.addWidget(self.confirm_button)

        self.select_ride_type(RideType.ECONOMY)

    @property
    def fares(self) -> dict[RideType, float]:
        return dict(self._fares)

    def update_trip(
        self,
        destination: Optional[Location],
        route: Optional[Route],
        fares: Mapping[RideType, float],
        now: Optional[datetime] = None,
    ) -> None:
        self._fares = dict(fares)
        for ride_type, card in self.cards.items():
            card.set_price(self._fares.get(ride_type, 0.0))
        self.destination_label.setText(destination.title if destination else "")
        duration = route.expected_travel_time if route is not None else 0.0
        pickup, dropoff = trip_times(now or datetime.now(), duration)
        self.pickup_time_label.setText(pickup)
        self.dropoff_time_label.setText(dropoff)

    def select_ride_type(self, ride_type: RideType) -> None:
        self.selected_ride_type = ride_type
        for candidate, card in self.cards.items():
            card.set_selected(candidate is ride_type)

    def _on_confirm_clicked(self) -> None:
        ride_type = self.selected_ride_type
        self.ride_confirmed.emit(ride_type, self._fares.get(ride_type, 0.0))


class HomeView(QWidget):
    """Map with the search, action button and ride sheet layered on top."""

    activity_event = pyqtSignal(str, str, str)
    menu_requested = pyqtSignal()

    def __init__(
        self,
        maps_handler: GoogleMapsHandler,
        runner: TaskRunner,
        settings: SettingsManager | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.maps_handler = maps_handler
        self.runner = runner

        span = settings.span_degrees() if settings else DEFAULT_SPAN_DEGREES
        padding = settings.route_padding() if settings else DEFAULT_ROUTE_PADDING
        fallback = settings.fallback_location() if settings else None
        location_enabled = bool(settings.data.get("location_enabled", True)) if settings else True

        self.map_canvas = MapCanvas(self)
        self.controller = MapStateController(
            self.map_canvas,
            maps_handler.route,
            runner,
            span_degrees=span,
            route_padding=padding,
            parent=self,
        )
        self.search_model = LocationSearchModel(
            maps_handler.autocomplete, maps_handler.resolve, runner, parent=self
        )
        self.location_provider = LocationProvider(
            maps_handler, runner, fallback=fallback, enabled=location_enabled, parent=self
        )

        self.action_button = MapViewActionButton(self)
        self.activation_view = LocationSearchActivationView(self)
        self.search_view = LocationSearchView(self)
        self.banner = InlineFeedbackBanner(self)
        self.ride_request_view = RideRequestView(self)

        self._build_layout()
        self._wire_signals()
        self._apply_state(self.controller.state)

    def _build_layout(self) -> None:
        layout = QGridLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.map_canvas, 0, 0)

        overlay = QWidget(self)
        overlay.setObjectName("MapOverlay")
        overlay.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground, True)
        overlay_layout = QVBoxLayout(overlay)
        overlay_layout.setContentsMargins(16, 12, 16, 0)
        overlay_layout.setSpacing(10)

        top_row = QHBoxLayout()
        top_row.setSpacing(12)
        top_row.addWidget(self.action_button, 0, Qt.AlignmentFlag.AlignTop)
        search_column = QVBoxLayout()
        search_column.addWidget(self.activation_view)
        search_column.addWidget(self.search_view)
        top_row.addLayout(search_column, 1)
        overlay_layout.addLayout(top_row)
        overlay_layout.addWidget(self.banner)
        overlay_layout.addStretch(1)
        overlay_layout.addWidget(self.ride_request_view)
        layout.addWidget(overlay, 0, 0)

    def _wire_signals(self) -> None:
        controller = self.controller
        controller.state_changed.connect(self._apply_state)
        controller.route_ready.connect(self._on_route_ready)
        controller.route_failed.connect(self._on_route_failed)
        controller.notice.connect(self._on_notice)
        controller.menu_requested.connect(self.menu_requested.emit)
        controller.activity_event.connect(self.activity_event.emit)

        self.action_button.clicked.connect(controller.press_action_button)
        self.activation_view.clicked.connect(controller.activate_search)
        self.banner.action_triggered.connect(controller.retry_route)

        self.search_view.query_edited.connect(self._on_query_edited)
        self.search_view.completion_chosen.connect(self.search_model.select)
        self.search_model.results_changed.connect(self.search_view.set_results)
        self.search_model.location_resolved.connect(controller.select_destination)
        self.search_model.resolve_failed.connect(self._on_resolve_failed)
        self.search_model.activity_event.connect(self.activity_event.emit)

        self.location_provider.location_updated.connect(self._on_location_updated)
        self.location_provider.permission_denied.connect(self._on_permission_denied)
        self.location_provider.lookup_failed.connect(self._on_location_lookup_failed)

        self.ride_request_view.ride_confirmed.connect(self._on_ride_confirmed)

    # Public API ----------------------------------------------------------
    def start(self) -> None:
        self.controller.start()
        self.location_provider.start()

    # Event handlers ------------------------------------------------------
    def _apply_state(self, state: MapViewState) -> None:
        self.activation_view.setVisible(state is MapViewState.IDLE)
        self.search_view.setVisible(state is MapViewState.SEARCHING)
        self.ride_request_view.setVisible(state is MapViewState.ROUTE_DRAWN)
        self.action_button.set_state(state)
        if state is MapViewState.SEARCHING:
            self.search_view.destination_input.setFocus()
        if state is MapViewState.IDLE:
            self.search_model.reset()
            self.search_view.reset()
            if self.banner.severity in {"warning", "error"}:
                self.banner.clear()
        if state is MapViewState.DESTINATION_CHOSEN:
            self.search_view.reset()

    def _on_query_edited(self, text: str) -> None:
        self.search_model.query_fragment = text

    def _on_route_ready(self, route: Route) -> None:
        if self.banner.severity in {"warning", "error"}:
            self.banner.clear()
        self.ride_request_view.update_trip(
            self.controller.destination, route, self.controller.fares()
        )

    def _on_route_failed(self, message: str) -> None:
        self.banner.show_message(message, severity="error", action_label="Retry route")

    def _on_notice(self, severity: str, message: str) -> None:
        self.banner.show_message(message, severity=severity)

    def _on_resolve_failed(self, message: str) -> None:
        self.banner.show_message(message, severity="error")

    def _on_location_updated(self, coordinate: Coordinate) -> None:
        self.controller.update_user_location(coordinate)
        self.search_view.set_start_label(
            f"Current location ({coordinate.latitude:.4f}, {coordinate.longitude:.4f})"
        )

    def _on_permission_denied(self, message: str) -> None:
        self.banner.show_message(message, severity="warning")
        self._emit_activity("warning", "Location access", message)

    def _on_location_lookup_failed(self, message: str) -> None:
        self._emit_activity("warning", "Location lookup", message)

    def _on_ride_confirmed(self, ride_type: RideType, fare: float) -> None:
        destination = self.controller.destination
        target = destination.title if destination else "your destination"
        detail = (
            f"{ride_type.label} to {target} for {to_currency(fare)}. "
            "Driver matching isn't available yet."
        )
        self.banner.show_message(detail, severity="info")
        self._emit_activity("info", "Ride request", detail)

    def _emit_activity(self, severity: str, title: str, message: str) -> None:
        self.activity_event.emit(severity, title, message)


class RideHailApp(QMainWindow):
    """Main window hosting the map screen and the activity stream."""

    def __init__(
        self,
        maps_handler: GoogleMapsHandler,
        settings_manager: SettingsManager,
        runner: TaskRunner | None = None,
    ) -> None:
        super().__init__()
        self.maps_handler = maps_handler
        self.settings_manager = settings_manager
        self.runner = runner or ThreadPoolTaskRunner()

        self.setWindowTitle("RideHail Map")
        window_size = self.settings_manager.data.get("window_size", {})
        self.resize(
            int(window_size.get("width", 1100)),
            int(window_size.get("height", 740)),
        )

        self._content_splitter = QSplitter(Qt.Orientation.Horizontal)
        self._content_splitter.setObjectName("ContentSplitter")
        self._content_splitter.setChildrenCollapsible(False)
        self._content_splitter.setHandleWidth(1)

        self.home_view = HomeView(self.maps_handler, self.runner, self.settings_manager)
        self._content_splitter.addWidget(self.home_view)

        activity_panel = QWidget()
        activity_panel.setObjectName("ActivityPanel")
        activity_layout = QVBoxLayout(activity_panel)
        activity_layout.setContentsMargins(16, 16, 16, 16)
        activity_layout.setSpacing(12)
        activity_label = QLabel("Activity & alerts")
        activity_label.setProperty("role", "sectionLabel")
        activity_layout.addWidget(activity_label)
        self.notification_center = NotificationCenter()
        activity_layout.addWidget(self.notification_center, 1)
        self._activity_panel = activity_panel
        self._content_splitter.addWidget(activity_panel)
        self._content_splitter.setStretchFactor(0, 4)
        self._content_splitter.setStretchFactor(1, 2)
        self.setCentralWidget(self._content_splitter)

        self._notification_visible = True
        if not bool(self.settings_manager.data.get("activity_panel_visible", True)):
            self._set_activity_panel_visible(False)

        self.home_view.activity_event.connect(self._log_activity)
        self.home_view.menu_requested.connect(self._toggle_notification_panel)
        self._notification_shortcut = QShortcut(QKeySequence("Ctrl+Shift+N"), self)
        self._notification_shortcut.setContext(Qt.ShortcutContext.WindowShortcut)
        self._notification_shortcut.activated.connect(self._toggle_notification_panel)

    @property
    def activity_panel_visible(self) -> bool:
        return self._notification_visible

    def start(self) -> None:
        self.home_view.start()
        self._log_activity("info", "Map ready", "Looking up your current location.")

    def _log_activity(self, severity: str, title: str, message: str) -> None:
        if severity not in {"info", "success", "warning", "error"}:
            severity = "info"
        level = {"warning": logging.WARNING, "error": logging.ERROR}.get(severity, logging.INFO)
        logger.log(level, "%s: %s", title, message)
        self.notification_center.add_entry(severity, title, message)
        if self._notification_visible:
            QTimer.singleShot(0, self.notification_center.mark_all_read)

    def _toggle_notification_panel(self) -> None:
        self._set_activity_panel_visible(not self._notification_visible)

    def _set_activity_panel_visible(self, visible: bool) -> None:
        self._notification_visible = visible
        self._activity_panel.setVisible(visible)
        if visible:
            QTimer.singleShot(0, self.notification_center.mark_all_read)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.settings_manager.update(
            {
                "window_size": {"width": self.width(), "height": self.height()},
                "activity_panel_visible": self._notification_visible,
            }
        )
        super().closeEvent(event)


def load_stylesheet() -> str:
    if STYLE_FILE.exists():
        return STYLE_FILE.read_text(encoding="utf-8")
    return ""


def configure_logging(level: str | None = None) -> None:
    level_name = (level or os.getenv("RIDEHAIL_LOG_LEVEL", "WARNING")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def bootstrap_app(settings_path: Path | None = None, log_level: str | None = None) -> int:
    """Configure the QApplication and start the GUI loop.

    ``settings_path`` replaces the per-user settings file and ``log_level``
    overrides ``RIDEHAIL_LOG_LEVEL``.

    Returns the exit code produced by ``QApplication.exec``.
    Raises ``GoogleMapsError`` if configuration is invalid before the GUI starts.
    """

    load_dotenv()
    configure_logging(log_level)
    settings_manager = SettingsManager(settings_path or SETTINGS_FILE)
    stored_key = str(settings_manager.data.get("google_maps_api_key", "")).strip()
    env_key = os.getenv("GOOGLE_MAPS_API_KEY", "").strip()
    api_key = stored_key or env_key

    app = QApplication.instance() or QApplication(sys.argv)
    app.setFont(QFont("Segoe UI", 10))
    stylesheet = load_stylesheet()
    if stylesheet:
        app.setStyleSheet(stylesheet)

    timeout = float(settings_manager.data.get("request_timeout_seconds", 10.0))
    maps_handler = GoogleMapsHandler(api_key, timeout=timeout)

    window = RideHailApp(maps_handler, settings_manager)
    window.show()
    window.start()
    if not maps_handler.enabled:
        QTimer.singleShot(
            0,
            lambda: QMessageBox.warning(
                window,
                "Google Maps Disabled",
                (
                    "The Google Maps API key wasn't found. Address search and routing "
                    "are disabled until you add one to the environment or your .env file."
                ),
            ),
        )
    return app.exec()


if __name__ == "__main__":
    try:
        sys.exit(bootstrap_app())
    except GoogleMapsError as exc:
        app = QApplication.instance() or QApplication(sys.argv)
        QMessageBox.critical(None, "Google Maps Configuration", str(exc))
        sys.exit(1)
