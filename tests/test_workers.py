import threading
import time

from PyQt6.QtCore import QThreadPool

from ridehail.utils.workers import ThreadPoolTaskRunner


def _wait_for(qapp, condition, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        qapp.processEvents()
        if condition():
            return
        time.sleep(0.01)
    raise AssertionError("background task did not report back in time")


def test_callbacks_run_on_the_gui_thread(qapp) -> None:
    runner = ThreadPoolTaskRunner(QThreadPool())
    finished: list = []
    failed: list = []
    worker_threads: list = []

    def multiply(left: int, right: int) -> int:
        worker_threads.append(threading.current_thread())
        return left * right

    def divide_by_zero() -> float:
        return 1 / 0

    runner.submit(
        multiply,
        6,
        7,
        on_finished=lambda result: finished.append((result, threading.current_thread())),
        on_error=failed.append,
    )
    runner.submit(
        divide_by_zero,
        on_finished=finished.append,
        on_error=lambda exc: failed.append((exc, threading.current_thread())),
    )

    runner.thread_pool.waitForDone(5000)
    _wait_for(qapp, lambda: finished and failed and not runner._active)

    assert finished == [(42, threading.main_thread())]
    exc, thread = failed[0]
    assert isinstance(exc, ZeroDivisionError)
    assert thread is threading.main_thread()
    assert worker_threads and worker_threads[0] is not threading.main_thread()
    assert runner._active == set()
