import os
from dataclasses import dataclass
from typing import Any, Callable

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication  # noqa: E402


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


@dataclass
class PendingTask:
    fn: Callable
    args: tuple
    on_finished: Callable[[Any], None]
    on_error: Callable[[Any], None]

    def run(self) -> None:
        try:
            result = self.fn(*self.args)
        except Exception as exc:  # noqa: BLE001 - mirrors the worker
            self.on_error(exc)
        else:
            self.on_finished(result)

    def finish(self, result: Any) -> None:
        self.on_finished(result)

    def fail(self, exc: Exception) -> None:
        self.on_error(exc)


class DeferredRunner:
    """Task runner that holds submissions until the test completes them."""

    def __init__(self) -> None:
        self.tasks: list[PendingTask] = []

    def submit(self, fn, *args, on_finished, on_error) -> None:
        self.tasks.append(PendingTask(fn, args, on_finished, on_error))

    def pop(self) -> PendingTask:
        return self.tasks.pop(0)

    def run_all(self) -> None:
        while self.tasks:
            self.pop().run()


class RecordingMapSurface:
    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []

    def clear(self) -> None:
        self.calls.append(("clear", None))

    def recenter(self, region) -> None:
        self.calls.append(("recenter", region))

    def show_user_location(self, coordinate) -> None:
        self.calls.append(("show_user_location", coordinate))

    def add_destination_marker(self, location) -> None:
        self.calls.append(("add_destination_marker", location))

    def draw_route(self, route) -> None:
        self.calls.append(("draw_route", route))

    def fit_route(self, route, padding) -> None:
        self.calls.append(("fit_route", (route, padding)))

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def reset(self) -> None:
        self.calls.clear()


@pytest.fixture
def runner() -> DeferredRunner:
    return DeferredRunner()


@pytest.fixture
def map_surface() -> RecordingMapSurface:
    return RecordingMapSurface()
