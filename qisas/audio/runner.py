"""Task runners: where slow lookups execute.

Audio URL and passage lookups perform network I/O.  The playback queue
and the selection controller never call them directly; they submit the
call to a runner together with result and error callbacks.  The
callbacks are always invoked on the controlling thread, so queue state
is only ever touched from one place.

:class:`InlineRunner` executes immediately and is used headless and in
tests.  The GUI uses :class:`~qisas.gui.async_job.QtTaskRunner`, which
executes on the global ``QThreadPool``.
"""

from __future__ import annotations

from typing import Any, Callable

ResultCallback = Callable[[Any], None]
ErrorCallback = Callable[[BaseException], None]


class TaskRunner:
    """Interface for submitting a callable with completion callbacks."""

    def submit(
        self,
        fn: Callable[..., Any],
        *args: Any,
        on_result: ResultCallback,
        on_error: ErrorCallback,
    ) -> None:
        raise NotImplementedError


class InlineRunner(TaskRunner):
    """Run the callable synchronously on the calling thread."""

    def submit(self, fn, *args, on_result, on_error) -> None:
        try:
            result = fn(*args)
        except Exception as exc:
            on_error(exc)
        else:
            on_result(result)
