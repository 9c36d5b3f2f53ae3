"""Build a Windows MSI installer for the RideHail map application.

This script relies on ``cx_Freeze`` and packages the PyQt6 application together with
its stylesheet. Run it from the project root:

    python scripts/build_msi.py bdist_msi

The resulting ``.msi`` will be written to the ``dist`` directory.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Tuple

try:
    from cx_Freeze import Executable, setup  # type: ignore[import]
except ImportError as exc:  # pragma: no cover - optional build dependency
    raise SystemExit(
        "cx_Freeze is required to build the Windows installer. "
        "Install it via 'pip install .[windows-installer]'."
    ) from exc

APP_NAME = "RideHail Map"
APP_VERSION = "0.1.0"
SUMMARY = "Search a destination, preview the route and compare ride fares."
UPGRADE_CODE = "{6B0E3D52-1C7A-4F0B-9D54-2E8A7C31F5A9}"

PROJECT_ROOT = Path(__file__).resolve().parent.parent
PACKAGE_ROOT = PROJECT_ROOT / "ridehail"
STYLESHEET = PACKAGE_ROOT / "resources" / "style.qss"
BUILD_DIR = PROJECT_ROOT / "build" / "msi"


def _collect_include_files() -> Iterable[Tuple[str, str]]:
    files: list[Tuple[str, str]] = []
    if STYLESHEET.exists():
        files.append((str(STYLESHEET), "resources/style.qss"))
    return files


MSI_OPTIONS = {
    "add_to_path": False,
    "initial_target_dir": r"[ProgramFilesFolder]\\RideHailMap",
    "upgrade_code": UPGRADE_CODE,
    "summary_data": {
        "comments": SUMMARY,
    },
}

EXECUTABLES = [
    Executable(
        script=str(PACKAGE_ROOT / "main.py"),
        base="Win32GUI",
        target_name="RideHailMap.exe",
        shortcut_name="RideHail Map",
        shortcut_dir="DesktopFolder",
    )
]


def main() -> None:
    os.chdir(PROJECT_ROOT)
    build_options = {
        "packages": ["ridehail", "PyQt6", "googlemaps", "dotenv", "pyqtgraph", "numpy"],
        "include_files": list(_collect_include_files()),
        "excludes": ["tkinter"],
        "include_msvcr": True,
        "build_exe": str(BUILD_DIR),
    }
    setup(
        name=APP_NAME,
        version=APP_VERSION,
        description=SUMMARY,
        executables=EXECUTABLES,
        options={
            "build_exe": build_options,
            "bdist_msi": MSI_OPTIONS,
        },
    )


if __name__ == "__main__":
    main()
