"""Playback queue: sequential, repeatable recitation of a list of verses.

:class:`PlaybackQueue` owns one :class:`PlaybackSession` at a time: the
ordered items, a cursor, the repeat-cycle counters and the single audio
output used to play them.  Selecting a new passage replaces the session
wholesale through :meth:`PlaybackQueue.set_queue`.

States::

    IDLE     cursor == -1, nothing playing
    LOADING  cursor on an item whose audio URL is being looked up
    PLAYING  output is playing the item at the cursor
    PAUSED   output holds its position
    ENDED    cursor == -1, every cycle has played

Audio URLs are looked up lazily, right before an item plays, using the
audio edition that is selected *at that moment*.  A lookup that fails
or yields no URL, and an output that refuses to start, make the queue
skip to the next item; no public method raises.

Lookups run through a :class:`~qisas.audio.runner.TaskRunner`.  Every
time the cursor is positioned, and on :meth:`~PlaybackQueue.stop` and
:meth:`~PlaybackQueue.set_queue`, a generation counter is incremented;
a lookup whose captured generation no longer matches is discarded when
it completes.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, List, Optional, Tuple, Union

from ..connectors.base import BaseAudioSource
from .output import AudioOutput
from .runner import InlineRunner, TaskRunner

logger = logging.getLogger(__name__)


class PlaybackState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


class Resolution(enum.Enum):
    """Audio URL lookup state of a :class:`PlayableItem`."""

    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass
class PlayableItem:
    """One verse in the queue.

    ``audio_url`` is written at most once, when the lookup succeeds, and
    is then reused for the rest of the queue's lifetime.  ``FAILED``
    records that a lookup was tried and produced nothing; such an item
    is looked up again the next time the cursor reaches it.
    """

    surah: int
    ayah: int
    audio_url: Optional[str] = None
    resolution: Resolution = Resolution.UNRESOLVED

    def __post_init__(self) -> None:
        if self.audio_url:
            self.resolution = Resolution.RESOLVED

    @property
    def is_resolved(self) -> bool:
        return self.resolution is Resolution.RESOLVED

    def mark_resolved(self, url: str) -> None:
        if self.is_resolved:
            return
        self.audio_url = url
        self.resolution = Resolution.RESOLVED

    def mark_failed(self) -> None:
        if not self.is_resolved:
            self.resolution = Resolution.FAILED


@dataclass
class RepeatState:
    """Cycle bookkeeping: how many full passes play before the end."""

    total: int = 1
    remaining: int = 1
    completed: int = 0

    @classmethod
    def fresh(cls, total: int) -> "RepeatState":
        return cls(total=total, remaining=total, completed=0)

    def reset(self) -> None:
        self.remaining = self.total
        self.completed = 0


@dataclass(frozen=True)
class ProgressEvent:
    """Cursor moved, time advanced, or playback was paused/resumed/stopped.

    ``index`` is -1 after a stop.  ``output`` gives access to the raw
    position and duration; consumers derive percentages themselves.
    """

    index: int
    output: Optional[AudioOutput]


@dataclass(frozen=True)
class EndedEvent:
    """Every cycle has played."""


PlaybackEvent = Union[ProgressEvent, EndedEvent]
ProgressCallback = Callable[[int, Optional[AudioOutput]], None]
EndCallback = Callable[[], None]
Listener = Callable[[PlaybackEvent], None]


def _noop_progress(index: int, output: Optional[AudioOutput]) -> None:
    pass


def _noop_end() -> None:
    pass


def clamp_cycles(value) -> int:
    """Coerce a repeat count to an int of at least 1."""
    try:
        return max(1, int(value))
    except (TypeError, ValueError):
        return 1


@dataclass
class PlaybackSession:
    """Everything that belongs to one queue; never shared between queues."""

    items: List[PlayableItem] = field(default_factory=list)
    repeat: RepeatState = field(default_factory=RepeatState)
    on_progress: ProgressCallback = _noop_progress
    on_end: EndCallback = _noop_end
    cursor: int = -1
    output: Optional[AudioOutput] = None


class PlaybackQueue:
    """Sequence playback of :class:`PlayableItem` entries.

    :param audio_source: Looks up audio URLs (``lookup_audio``).
    :param edition: Returns the audio edition to use; called on every
        lookup so a changed preference applies to the next item.
    :param output_factory: Creates the audio output for a session.
    :param runner: Executes lookups; defaults to :class:`InlineRunner`.
    """

    def __init__(
        self,
        audio_source: BaseAudioSource,
        edition: Callable[[], str],
        output_factory: Callable[[], AudioOutput],
        runner: Optional[TaskRunner] = None,
    ) -> None:
        self._source = audio_source
        self._edition = edition
        self._output_factory = output_factory
        self._runner = runner or InlineRunner()
        self._session = PlaybackSession()
        self._state = PlaybackState.IDLE
        self._generation = 0
        self._listeners: List[Listener] = []
        self._advancing = False
        self._pending: Optional[int] = None

    # ------------------------------------------------------------------
    # Read-only surface
    # ------------------------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def cursor(self) -> int:
        return self._session.cursor

    @property
    def items(self) -> Tuple[PlayableItem, ...]:
        return tuple(self._session.items)

    @property
    def repeat(self) -> RepeatState:
        """A copy of the current repeat counters."""
        return replace(self._session.repeat)

    @property
    def output(self) -> Optional[AudioOutput]:
        return self._session.output

    @property
    def current_item(self) -> Optional[PlayableItem]:
        s = self._session
        if 0 <= s.cursor < len(s.items):
            return s.items[s.cursor]
        return None

    @property
    def has_active_track(self) -> bool:
        return self._session.output is not None and self._session.cursor >= 0

    @property
    def is_paused(self) -> bool:
        return self._state is PlaybackState.PAUSED

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: PlaybackEvent) -> None:
        s = self._session
        try:
            if isinstance(event, ProgressEvent):
                s.on_progress(event.index, event.output)
            else:
                s.on_end()
        except Exception:
            logger.exception("Playback callback failed for %r", event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Playback listener failed for %r", event)

    # ------------------------------------------------------------------
    # Output handling
    # ------------------------------------------------------------------

    def _ensure_output(self) -> AudioOutput:
        s = self._session
        if s.output is None:
            out = self._output_factory()
            out.bind(
                on_ended=lambda: self._on_output_ended(s),
                on_tick=lambda: self._on_output_tick(s),
                on_error=lambda message: self._on_output_error(s, message),
            )
            s.output = out
        return s.output

    def _on_output_ended(self, session: PlaybackSession) -> None:
        if session is not self._session or self._state is not PlaybackState.PLAYING:
            return
        self.next()

    def _on_output_tick(self, session: PlaybackSession) -> None:
        if session is not self._session or self._state is not PlaybackState.PLAYING:
            return
        self._emit(ProgressEvent(session.cursor, session.output))

    def _on_output_error(self, session: PlaybackSession, message: str) -> None:
        if session is not self._session:
            return
        if self._state not in (PlaybackState.PLAYING, PlaybackState.LOADING):
            return
        item = self.current_item
        logger.warning(
            "Audio output error on %s: %s",
            f"{item.surah}:{item.ayah}" if item else "<none>", message,
        )
        self.next()

    def _release_output(self, session: PlaybackSession) -> None:
        if session.output is None:
            return
        try:
            session.output.release()
        except Exception:
            logger.exception("Releasing audio output failed")
        session.output = None

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    def set_queue(
        self,
        items: Iterable[PlayableItem],
        repeat_count=1,
        on_progress: Optional[ProgressCallback] = None,
        on_end: Optional[EndCallback] = None,
    ) -> None:
        """Replace the session.  Playback does not start."""
        self.stop()
        old = self._session
        self._release_output(old)
        self._generation += 1
        self._session = PlaybackSession(
            items=list(items),
            repeat=RepeatState.fresh(clamp_cycles(repeat_count)),
            on_progress=on_progress or _noop_progress,
            on_end=on_end or _noop_end,
        )
        self._state = PlaybackState.IDLE
        logger.debug(
            "Queue set: %d items, %d cycles",
            len(self._session.items), self._session.repeat.total,
        )

    def play(self) -> None:
        """Start at the cursor, or at the first item when not positioned.

        After a natural end, all cycles start over.
        """
        s = self._session
        if s.cursor < 0 and s.repeat.remaining <= 0:
            s.repeat.reset()
        self._play_at(s.cursor if s.cursor >= 0 else 0)

    def pause(self) -> None:
        if self._state is not PlaybackState.PLAYING:
            return
        out = self._session.output
        if out is not None:
            try:
                out.pause()
            except Exception:
                logger.exception("Pausing audio output failed")
        self._state = PlaybackState.PAUSED
        self._emit(ProgressEvent(self._session.cursor, out))

    def resume(self) -> None:
        if self._state is not PlaybackState.PAUSED:
            return
        out = self._session.output
        try:
            out.play()
        except Exception as exc:
            logger.warning("Resuming playback failed: %s", exc)
            self.next()
            return
        self._state = PlaybackState.PLAYING
        self._emit(ProgressEvent(self._session.cursor, out))

    def toggle(self) -> None:
        """Play/pause button: pause, resume or start as appropriate."""
        if self._state is PlaybackState.PLAYING:
            self.pause()
        elif self.has_active_track and self.is_paused:
            self.resume()
        else:
            self.play()

    def stop(self, reset_repeat: bool = True) -> None:
        """Halt output, rewind, and un-position the cursor.

        With ``reset_repeat=False`` the cycle counters are kept; the
        queue uses this when the last cycle ends naturally.
        """
        s = self._session
        self._generation += 1
        self._pending = None
        out = s.output
        if out is not None:
            try:
                out.pause()
                out.rewind()
            except Exception:
                logger.exception("Stopping audio output failed")
        s.cursor = -1
        if reset_repeat:
            s.repeat.reset()
        self._state = PlaybackState.IDLE
        self._emit(ProgressEvent(-1, out))

    def next(self) -> None:
        self._play_at(self._session.cursor + 1)

    def prev(self) -> None:
        self._play_at(self._session.cursor - 1)

    def set_repeat_count(self, count) -> None:
        """Change the number of cycles without restarting the current one."""
        r = self._session.repeat
        r.total = clamp_cycles(count)
        if self._session.cursor < 0:
            r.reset()
        else:
            r.completed = min(r.completed, r.total)
            r.remaining = max(1, r.total - r.completed)

    def close(self) -> None:
        """Stop and release the output; the queue stays usable."""
        self.stop()
        self._release_output(self._session)

    # ------------------------------------------------------------------
    # Sequencing
    # ------------------------------------------------------------------

    def _play_at(self, index: int) -> None:
        """Position the cursor at *index* and start that item.

        Skips requested while an item is being started (failed lookup,
        rejected playback, cycle restart) are queued in ``_pending`` and
        drained by the outermost call, so a long run of unplayable items
        never grows the call stack.
        """
        self._pending = index
        if self._advancing:
            return
        self._advancing = True
        try:
            while self._pending is not None:
                target, self._pending = self._pending, None
                self._step(target)
        finally:
            self._advancing = False
            self._pending = None

    def _step(self, index: int) -> None:
        s = self._session
        if index < 0 or index >= len(s.items):
            self._finish_or_repeat()
            return
        s.cursor = index
        self._generation += 1
        generation = self._generation
        item = s.items[index]
        if item.is_resolved:
            self._start(item, generation)
            return
        self._state = PlaybackState.LOADING
        self._runner.submit(
            self._lookup,
            item,
            on_result=lambda url: self._on_resolved(generation, item, url),
            on_error=lambda exc: self._on_resolve_failed(generation, item, exc),
        )

    def _lookup(self, item: PlayableItem) -> Optional[str]:
        edition = self._edition()
        return self._source.lookup_audio(item.surah, item.ayah, edition)

    def _on_resolved(self, generation: int, item: PlayableItem, url: Optional[str]) -> None:
        if generation != self._generation:
            logger.debug("Discarding stale audio lookup for %d:%d", item.surah, item.ayah)
            return
        if not url:
            item.mark_failed()
            logger.warning("No audio URL for %d:%d, skipping", item.surah, item.ayah)
            self.next()
            return
        item.mark_resolved(url)
        self._start(item, generation)

    def _on_resolve_failed(self, generation: int, item: PlayableItem, exc: BaseException) -> None:
        if generation != self._generation:
            logger.debug("Discarding stale failed lookup for %d:%d", item.surah, item.ayah)
            return
        item.mark_failed()
        logger.warning("Audio lookup failed for %d:%d: %s", item.surah, item.ayah, exc)
        self.next()

    def _start(self, item: PlayableItem, generation: int) -> None:
        s = self._session
        out = self._ensure_output()
        self._state = PlaybackState.LOADING
        try:
            out.load(item.audio_url)
            out.play()
        except Exception as exc:
            if generation != self._generation:
                return
            logger.warning("Playback failed for %d:%d: %s", item.surah, item.ayah, exc)
            self.next()
            return
        if generation != self._generation:
            return
        self._state = PlaybackState.PLAYING
        self._emit(ProgressEvent(s.cursor, out))

    def _finish_or_repeat(self) -> None:
        s = self._session
        if not s.items:
            return
        r = s.repeat
        r.completed = min(r.total, r.completed + 1)
        if r.remaining > 1:
            r.remaining -= 1
            s.cursor = -1
            logger.debug("Cycle %d/%d complete, repeating", r.completed, r.total)
            self._play_at(0)
        else:
            r.remaining = 0
            self.stop(reset_repeat=False)
            self._state = PlaybackState.ENDED
            logger.debug("Playback ended after %d cycles", r.completed)
            self._emit(EndedEvent())
