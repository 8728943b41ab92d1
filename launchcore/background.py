"""Runs recurring tasks in a background thread with restart on demand."""

from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta
from typing import Callable, Generic, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


class BackgroundExecutor(Generic[T]):
    """Executes ``parallel`` in a thread and hands its result to ``finish``.

    ``parallel`` receives an abort callable which returns True once a rerun
    has been requested; the result of such a run is discarded and the task
    starts again. ``finish`` is called in the worker thread.
    """

    def __init__(self, parallel: Callable[[Callable[[], bool]], T] | None = None,
                 finish: Callable[[T], object] | None = None):
        self.parallel = parallel
        self.finish = finish
        self.runtime = timedelta(0)
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._rerun = False

    @property
    def is_running(self) -> bool:
        """True while a task is being executed."""
        with self._lock:
            return self._thread is not None

    def run(self) -> None:
        """Start the task, or request a rerun if it is running."""
        if self.parallel is None or self.finish is None:
            raise ValueError("parallel and finish must be set before running")
        with self._lock:
            if self._thread is not None:
                self._rerun = True
            else:
                self._start()

    def wait(self) -> None:
        """Block until no task is running, reruns included."""
        while True:
            with self._lock:
                thread = self._thread
            if thread is None or thread is threading.current_thread():
                return
            thread.join()

    def _start(self) -> None:
        self._thread = threading.Thread(target=self._work, daemon=True)
        self._thread.start()

    def _abort(self) -> bool:
        return self._rerun

    def _work(self) -> None:
        start = time.monotonic()
        try:
            result = self.parallel(self._abort)
            failed = False
        except Exception:
            log.exception("Background task failed.")
            failed = True
        self.runtime = timedelta(seconds=time.monotonic() - start)

        with self._lock:
            if self._rerun:
                self._rerun = False
                self._start()
                return

        if not failed:
            try:
                self.finish(result)
            except Exception:
                log.exception("Background result handler failed.")

        with self._lock:
            if self._rerun:
                self._rerun = False
                self._start()
            else:
                self._thread = None