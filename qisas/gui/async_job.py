"""Helpers for running slow lookups in a background thread.

This module defines a ``Job`` class and associated ``JobSignals`` to
execute time-consuming functions (network lookups) without blocking
the Qt event loop.  A ``Job`` is submitted to the global
``QThreadPool``; its ``result``, ``error`` and ``finished`` signals are
delivered back on the GUI thread.

:class:`QtTaskRunner` wraps this in the
:class:`~qisas.audio.runner.TaskRunner` interface used by the playback
queue and the selection controller::

    runner = QtTaskRunner()
    runner.submit(source.lookup_audio, 12, 4, "ar.alafasy",
                  on_result=play_url, on_error=skip)
"""

from __future__ import annotations

from typing import Optional, Set

from PyQt6.QtCore import QObject, QRunnable, QThreadPool, pyqtSignal, pyqtSlot

from ..audio.runner import TaskRunner


class JobSignals(QObject):
    """Defines the signals available from a running job.

    ``result``
        Emitted with the return value of the function.

    ``error``
        Emitted with the exception object if the function raises.

    ``finished``
        Emitted when the job is finished, regardless of success or
        failure.
    """

    result = pyqtSignal(object)
    error = pyqtSignal(object)
    finished = pyqtSignal()


class Job(QRunnable):
    """Wraps a callable for execution in a separate thread.

    :param fn: Callable to execute.
    :param args: Positional arguments to pass to ``fn``.
    :param kwargs: Keyword arguments to pass to ``fn``.
    """

    def __init__(self, fn, *args, **kwargs) -> None:
        super().__init__()
        self.fn = fn
        self.args = args
        self.kwargs = kwargs
        self.signals = JobSignals()

    @pyqtSlot()
    def run(self) -> None:
        """Execute the function and emit signals as appropriate."""
        try:
            result = self.fn(*self.args, **self.kwargs)
        except Exception as exc:
            self.signals.error.emit(exc)
        else:
            self.signals.result.emit(result)
        finally:
            self.signals.finished.emit()


class QtTaskRunner(TaskRunner):
    """Run submissions on a ``QThreadPool``; callbacks fire on the GUI thread.

    Jobs are kept referenced until they finish so their signal objects
    outlive the worker thread.
    """

    def __init__(self, pool: Optional[QThreadPool] = None) -> None:
        self._pool = pool or QThreadPool.globalInstance()
        self._active: Set[Job] = set()

    def submit(self, fn, *args, on_result, on_error) -> None:
        job = Job(fn, *args)
        job.setAutoDelete(False)
        job.signals.result.connect(on_result)
        job.signals.error.connect(on_error)
        job.signals.finished.connect(lambda: self._active.discard(job))
        self._active.add(job)
        self._pool.start(job)
