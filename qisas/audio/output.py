"""Audio output contract used by the playback queue.

The queue drives exactly one output resource at a time and relies on
nothing beyond the small surface defined here: load a URL, start,
pause, rewind, report position and duration, and signal end-of-item,
time progress and errors through bound handlers.  The desktop player
uses :class:`~qisas.audio.qt_output.QtAudioOutput`; tests substitute a
fake driven by hand.
"""

from __future__ import annotations

from typing import Callable, Optional

Handler = Callable[[], None]
ErrorHandler = Callable[[str], None]


class AudioOutput:
    """Abstract single-stream audio resource.

    Subclasses implement the transport methods and call
    :meth:`_notify_ended`, :meth:`_notify_tick` and :meth:`_notify_error`
    when the underlying player reports those events.  After
    :meth:`release` no handler is ever called again.
    """

    def __init__(self) -> None:
        self._on_ended: Optional[Handler] = None
        self._on_tick: Optional[Handler] = None
        self._on_error: Optional[ErrorHandler] = None

    def bind(
        self,
        on_ended: Optional[Handler] = None,
        on_tick: Optional[Handler] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        """Attach the handlers for end-of-item, time progress and errors."""
        self._on_ended = on_ended
        self._on_tick = on_tick
        self._on_error = on_error

    def unbind(self) -> None:
        self._on_ended = None
        self._on_tick = None
        self._on_error = None

    def _notify_ended(self) -> None:
        if self._on_ended is not None:
            self._on_ended()

    def _notify_tick(self) -> None:
        if self._on_tick is not None:
            self._on_tick()

    def _notify_error(self, message: str) -> None:
        if self._on_error is not None:
            self._on_error(message)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def load(self, url: str) -> None:
        raise NotImplementedError

    def play(self) -> None:
        """Start or continue playback.  May raise if playback cannot start."""
        raise NotImplementedError

    def pause(self) -> None:
        raise NotImplementedError

    def rewind(self) -> None:
        """Move the playback position back to the start of the item."""
        raise NotImplementedError

    def release(self) -> None:
        """Stop output and detach all handlers."""
        self.unbind()

    # ------------------------------------------------------------------
    # Position
    # ------------------------------------------------------------------

    @property
    def current_time(self) -> float:
        """Playback position in seconds."""
        raise NotImplementedError

    @property
    def duration(self) -> float:
        """Item duration in seconds; ``0.0`` while unknown."""
        raise NotImplementedError

    @property
    def paused(self) -> bool:
        raise NotImplementedError


def percent_complete(output: Optional[AudioOutput]) -> int:
    """Return the rounded playback percentage of *output* (0 when unknown)."""
    if output is None:
        return 0
    duration = output.duration
    if not duration:
        return 0
    return int(round(output.current_time / duration * 100))
