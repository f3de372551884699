"""Runners that execute page-render jobs and report back on the GUI thread.

A runner's ``submit(job, on_success, on_failure)`` calls ``job()`` somewhere
and later invokes exactly one of the two callbacks, always on the thread that
called ``submit``.
"""
from typing import Any, Callable, Dict, Tuple

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal, Slot

from pagecrop import data_store

Job = Callable[[], Any]
SuccessCallback = Callable[[Any], None]
FailureCallback = Callable[[BaseException], None]


class InlineRenderRunner:
    """Runs each job synchronously inside ``submit``."""

    def submit(self, job: Job, on_success: SuccessCallback,
               on_failure: FailureCallback) -> None:
        try:
            result = job()
        except Exception as exc:
            on_failure(exc)
            return
        on_success(result)


class _JobSignals(QObject):
    succeeded = Signal(int, object)   # job id, result
    failed    = Signal(int, object)   # job id, exception


class _RenderJob(QRunnable):
    def __init__(self, job_id: int, job: Job, signals: _JobSignals):
        super().__init__()
        self._job_id = job_id
        self._job = job
        self._signals = signals
        self.setAutoDelete(True)

    def run(self):
        try:
            result = self._job()
        except Exception as exc:
            self._signals.failed.emit(self._job_id, exc)
            return
        self._signals.succeeded.emit(self._job_id, result)


class QtRenderRunner(QObject):
    """Runs jobs on a single background thread from a ``QThreadPool``.

    Results come back through queued signals to slots on this object, so the
    callbacks run on the thread that owns the runner (the GUI thread).
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self._pool = QThreadPool(self)
        self._pool.setMaxThreadCount(1)
        self._signals = _JobSignals(self)
        self._signals.succeeded.connect(self._on_succeeded)
        self._signals.failed.connect(self._on_failed)
        self._callbacks: Dict[int, Tuple[SuccessCallback, FailureCallback]] = {}
        self._next_id = 0

    def submit(self, job: Job, on_success: SuccessCallback,
               on_failure: FailureCallback) -> None:
        self._next_id += 1
        self._callbacks[self._next_id] = (on_success, on_failure)
        self._pool.start(_RenderJob(self._next_id, job, self._signals))
        data_store.dbg(f"Render job {self._next_id} queued "
                       f"({len(self._callbacks)} in flight)")

    def wait_for_done(self, msecs: int = -1) -> bool:
        """Block until the background thread is idle (used on shutdown)."""
        return self._pool.waitForDone(msecs)

    @Slot(int, object)
    def _on_succeeded(self, job_id: int, result):
        callbacks = self._callbacks.pop(job_id, None)
        if callbacks is not None:
            callbacks[0](result)

    @Slot(int, object)
    def _on_failed(self, job_id: int, exc):
        callbacks = self._callbacks.pop(job_id, None)
        if callbacks is not None:
            callbacks[1](exc)
