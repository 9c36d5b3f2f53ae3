"""Debounced address search feeding the map controller."""

from __future__ import annotations

import logging
from itertools import count
from typing import Callable, List, Optional

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from .utils.geo import Location, SearchCompletion
from .utils.workers import TaskRunner

logger = logging.getLogger(__name__)

AutocompleteLookup = Callable[[str], List[SearchCompletion]]
ResolveLookup = Callable[[SearchCompletion], Location]


class LocationSearchModel(QObject):
    """Keeps the completion list in sync with the typed query fragment.

    Every keystroke restarts a short timer; when it fires the fragment is sent
    to the autocomplete service. Results that arrive for an outdated fragment,
    and resolutions superseded by a newer selection, are dropped.
    """

    results_changed = pyqtSignal(list)
    location_resolved = pyqtSignal(object)
    resolve_failed = pyqtSignal(str)
    activity_event = pyqtSignal(str, str, str)

    DEBOUNCE_MS = 450

    def __init__(
        self,
        autocomplete: AutocompleteLookup,
        resolve: ResolveLookup,
        runner: TaskRunner,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._autocomplete = autocomplete
        self._resolve = resolve
        self.runner = runner
        self._query_fragment = ""
        self._results: list[SearchCompletion] = []
        self._resolve_ids = count(1)
        self._pending_resolve: Optional[int] = None
        self.selected_location: Optional[Location] = None

        self._timer = QTimer(self)
        self._timer.setInterval(self.DEBOUNCE_MS)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self.fetch_results)

    @property
    def query_fragment(self) -> str:
        return self._query_fragment

    @query_fragment.setter
    def query_fragment(self, text: str) -> None:
        self._query_fragment = text
        if not text.strip():
            self._timer.stop()
            self._set_results([])
            return
        self._timer.start()

    @property
    def results(self) -> list[SearchCompletion]:
        return list(self._results)

    @property
    def resolving(self) -> bool:
        return self._pending_resolve is not None

    def fetch_results(self) -> None:
        query = self._query_fragment.strip()
        if not query:
            self._set_results([])
            return
        self.runner.submit(
            self._autocomplete,
            query,
            on_finished=lambda results, q=query: self.handle_results(q, results),
            on_error=lambda exc, q=query: self.handle_results_error(q, str(exc)),
        )

    def handle_results(self, query: str, results: list[SearchCompletion]) -> bool:
        if query != self._query_fragment.strip():
            return False
        self._set_results(list(results))
        return True

    def handle_results_error(self, query: str, message: str) -> None:
        if query != self._query_fragment.strip():
            return
        logger.warning("Autocomplete for %r failed: %s", query, message)
        self._emit_activity("error", "Address search", f"Google Maps error: {message}")

    def select(self, completion: SearchCompletion) -> None:
        """Resolve *completion* to a coordinate; a later call supersedes this one."""
        resolve_id = next(self._resolve_ids)
        self._pending_resolve = resolve_id
        self.runner.submit(
            self._resolve,
            completion,
            on_finished=lambda location, rid=resolve_id: self.handle_resolved(rid, location),
            on_error=lambda exc, rid=resolve_id, c=completion: self.handle_resolve_error(
                rid, c, str(exc)
            ),
        )

    def handle_resolved(self, resolve_id: int, location: Location) -> bool:
        if resolve_id != self._pending_resolve:
            return False
        self._pending_resolve = None
        self.selected_location = location
        self.location_resolved.emit(location)
        return True

    def handle_resolve_error(
        self, resolve_id: int, completion: SearchCompletion, message: str
    ) -> bool:
        if resolve_id != self._pending_resolve:
            return False
        self._pending_resolve = None
        logger.warning("Resolving %r failed: %s", completion.title, message)
        detail = f"Couldn't locate {completion.title}: {message}"
        self.resolve_failed.emit(detail)
        self._emit_activity("error", "Address lookup", detail)
        return True

    def reset(self) -> None:
        self._timer.stop()
        self._query_fragment = ""
        self._pending_resolve = None
        self.selected_location = None
        self._set_results([])

    def _set_results(self, results: list[SearchCompletion]) -> None:
        self._results = results
        self.results_changed.emit(list(results))

    def _emit_activity(self, severity: str, title: str, message: str) -> None:
        self.activity_event.emit(severity, title, message)
