import json
from pathlib import Path

from ridehail.map_state import DEFAULT_ROUTE_PADDING, DEFAULT_SPAN_DEGREES
from ridehail.ridehail_app import SettingsManager
from ridehail.utils.geo import Coordinate, EdgePadding


def test_defaults_are_written_on_first_run(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.json"

    settings = SettingsManager(path)

    assert path.exists()
    stored = json.loads(path.read_text(encoding="utf-8"))
    assert stored["location_enabled"] is True
    assert settings.span_degrees() == DEFAULT_SPAN_DEGREES
    assert settings.route_padding() == DEFAULT_ROUTE_PADDING
    assert settings.fallback_location() == Coordinate(37.7749, -122.4194)


def test_partial_file_is_merged_with_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps({"route_edge_padding": {"bottom": 320}, "map_span_degrees": 0.1}),
        encoding="utf-8",
    )

    settings = SettingsManager(path)

    assert settings.route_padding() == EdgePadding(top=64, left=32, bottom=320, right=32)
    assert settings.span_degrees() == 0.1
    assert settings.data["request_timeout_seconds"] == 10.0


def test_corrupt_file_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    settings = SettingsManager(path)

    assert settings.data["google_maps_api_key"] == ""
    assert json.loads(path.read_text(encoding="utf-8"))["activity_panel_visible"] is True


def test_invalid_values_use_safe_defaults(tmp_path: Path) -> None:
    settings = SettingsManager(tmp_path / "settings.json")

    settings.update({"map_span_degrees": -1, "fallback_location": {"title": "Nowhere"}})

    assert settings.span_degrees() == DEFAULT_SPAN_DEGREES
    assert settings.fallback_location() is None
    reloaded = SettingsManager(tmp_path / "settings.json")
    assert reloaded.data["map_span_degrees"] == -1
