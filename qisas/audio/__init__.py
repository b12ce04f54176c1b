"""
Playback subsystem for Qisas.

This subpackage turns a list of verses into an ordered, resumable,
repeatable recitation:

* :class:`PlaybackQueue` – the sequencing state machine.  It drives a
  single :class:`AudioOutput`, looks up audio URLs lazily and reports
  progress through callbacks and tagged events.

* :class:`AudioOutput` – the minimal output contract.  The Qt
  implementation lives in :mod:`qisas.audio.qt_output` and is imported
  explicitly by the GUI so that the queue itself has no Qt dependency.

* :class:`InlineRunner` – executes lookups synchronously; the GUI uses
  :class:`qisas.gui.async_job.QtTaskRunner` instead.
"""

from .output import AudioOutput, percent_complete  # noqa: F401
from .queue import (  # noqa: F401
    EndedEvent,
    PlayableItem,
    PlaybackEvent,
    PlaybackQueue,
    PlaybackSession,
    PlaybackState,
    ProgressEvent,
    RepeatState,
    Resolution,
)
from .runner import InlineRunner, TaskRunner  # noqa: F401

__all__ = [
    "AudioOutput",
    "percent_complete",
    "EndedEvent",
    "PlayableItem",
    "PlaybackEvent",
    "PlaybackQueue",
    "PlaybackSession",
    "PlaybackState",
    "ProgressEvent",
    "RepeatState",
    "Resolution",
    "InlineRunner",
    "TaskRunner",
]
