"""Background execution helpers for Google Maps lookups."""

from __future__ import annotations

from typing import Any, Callable, Protocol

from PyQt6.QtCore import QObject, QRunnable, QThreadPool, pyqtSignal

Callback = Callable[[Any], None]


class WorkerSignals(QObject):
    """Signals available from a running background worker."""

    finished = pyqtSignal(object)
    error = pyqtSignal(object)


class Worker(QRunnable):
    """Utility runnable that executes callables on the thread pool."""

    def __init__(self, fn: Callable, *args: Any, **kwargs: Any) -> None:
        super().__init__()
        self.fn = fn
        self.args = args
        self.kwargs = kwargs
        self.signals = WorkerSignals()

    def run(self) -> None:  # pragma: no cover - executed in a worker thread
        try:
            result = self.fn(*self.args, **self.kwargs)
        except Exception as exc:  # pylint: disable=broad-except
            self.signals.error.emit(exc)
        else:
            self.signals.finished.emit(result)


class TaskRunner(Protocol):
    def submit(
        self,
        fn: Callable,
        *args: Any,
        on_finished: Callback,
        on_error: Callback,
    ) -> None: ...


class ThreadPoolTaskRunner:
    """Run callables on a ``QThreadPool``; callbacks fire on the GUI thread.

    The worker signals are emitted from the pool thread and delivered through
    queued connections, so every callback runs on the thread that owns the
    receiver.
    """

    def __init__(self, thread_pool: QThreadPool | None = None) -> None:
        self.thread_pool = thread_pool or QThreadPool.globalInstance()
        self._active: set[Worker] = set()

    def submit(
        self,
        fn: Callable,
        *args: Any,
        on_finished: Callback,
        on_error: Callback,
    ) -> None:
        worker = Worker(fn, *args)
        worker.setAutoDelete(False)
        self._active.add(worker)
        worker.signals.finished.connect(on_finished)
        worker.signals.error.connect(on_error)
        worker.signals.finished.connect(lambda _result, w=worker: self._active.discard(w))
        worker.signals.error.connect(lambda _exc, w=worker: self._active.discard(w))
        self.thread_pool.start(worker)
