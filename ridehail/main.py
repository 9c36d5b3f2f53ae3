# ridehail/main.py
"""Main entry point for the RideHail map application.

Run ``ridehail --help`` for the available options; with none the map window
opens using the per-user settings file.
"""

from __future__ import annotations

import argparse
import sys
from importlib import import_module
from pathlib import Path
from typing import Optional, Sequence

from PyQt6.QtWidgets import QApplication, QMessageBox

if __package__ in (None, ""):
    package_root = Path(__file__).resolve().parent.parent
    if str(package_root) not in sys.path:
        sys.path.insert(0, str(package_root))
    _ridehail = import_module("ridehail.ridehail_app")
else:  # pragma: no cover - import path depends on runtime context
    _ridehail = import_module(".ridehail_app", package=__package__)

GoogleMapsError = _ridehail.GoogleMapsError
bootstrap_app = _ridehail.bootstrap_app

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ridehail",
        description="RideHail map: search a destination, preview the route and compare fares.",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        metavar="PATH",
        help="Read and write settings at PATH instead of the per-user settings file.",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Diagnostic log level (overrides RIDEHAIL_LOG_LEVEL).",
    )
    parser.add_argument(
        "--reset-settings",
        action="store_true",
        help="Restore default settings, keeping a stored API key, and exit.",
    )
    return parser


def reset_settings(path: Path) -> Path:
    """Rewrite *path* with default settings; a stored Google Maps key survives."""
    stored_key = ""
    if path.exists():
        stored_key = str(_ridehail.SettingsManager(path).data.get("google_maps_api_key", ""))
        path.unlink()
    settings = _ridehail.SettingsManager(path)
    if stored_key:
        settings.update({"google_maps_api_key": stored_key})
    return path


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Launch the PyQt6 RideHail GUI."""
    args = build_parser().parse_args(argv)
    if args.reset_settings:
        path = reset_settings(args.settings or _ridehail.SETTINGS_FILE)
        print(f"Settings restored to defaults at {path}")
        raise SystemExit(0)

    try:
        exit_code = bootstrap_app(settings_path=args.settings, log_level=args.log_level)
    except GoogleMapsError as exc:
        app = QApplication.instance() or QApplication(sys.argv)
        QMessageBox.critical(None, "Google Maps Configuration", str(exc))
        raise SystemExit(1) from exc
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
