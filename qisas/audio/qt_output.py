"""Qt Multimedia implementation of :class:`~qisas.audio.output.AudioOutput`.

``QMediaPlayer`` streams the recitation URL directly; a ``QAudioOutput``
routes it to the default device.  Both objects belong to the GUI thread,
which is also the thread the playback queue runs on, so no worker
threads are involved here.

Signal mapping:

* ``positionChanged``    → time-progress tick
* ``mediaStatusChanged`` with ``EndOfMedia`` → end of item
* ``errorOccurred``      → error (the queue skips to the next item)
"""

from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import QObject, QUrl
from PyQt6.QtMultimedia import QAudioOutput, QMediaPlayer

from .output import AudioOutput

logger = logging.getLogger(__name__)


class QtAudioOutput(AudioOutput):
    """Audio output backed by ``QMediaPlayer``.

    :param parent: Optional Qt parent owning the player objects.
    :param volume: Linear volume between 0.0 and 1.0.
    """

    def __init__(self, parent: Optional[QObject] = None, volume: float = 1.0) -> None:
        super().__init__()
        self._player = QMediaPlayer(parent)
        self._audio = QAudioOutput(parent)
        self._audio.setVolume(max(0.0, min(volume, 1.0)))
        self._player.setAudioOutput(self._audio)
        self._player.positionChanged.connect(self._on_position_changed)
        self._player.mediaStatusChanged.connect(self._on_media_status_changed)
        self._player.errorOccurred.connect(self._on_error)

    # ------------------------------------------------------------------
    # Qt slots
    # ------------------------------------------------------------------

    def _on_position_changed(self, _position: int) -> None:
        self._notify_tick()

    def _on_media_status_changed(self, status: QMediaPlayer.MediaStatus) -> None:
        if status == QMediaPlayer.MediaStatus.EndOfMedia:
            self._notify_ended()
        elif status == QMediaPlayer.MediaStatus.InvalidMedia:
            self._notify_error("invalid media")

    def _on_error(self, error: QMediaPlayer.Error, message: str) -> None:
        if error == QMediaPlayer.Error.NoError:
            return
        logger.debug("QMediaPlayer error %s: %s", error, message)
        self._notify_error(message or str(error))

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def load(self, url: str) -> None:
        self._player.setSource(QUrl(url))

    def play(self) -> None:
        self._player.play()

    def pause(self) -> None:
        self._player.pause()

    def rewind(self) -> None:
        self._player.setPosition(0)

    def release(self) -> None:
        super().release()
        self._player.stop()
        self._player.setSource(QUrl())
        self._player.deleteLater()
        self._audio.deleteLater()

    # ------------------------------------------------------------------
    # Position
    # ------------------------------------------------------------------

    @property
    def current_time(self) -> float:
        return self._player.position() / 1000.0

    @property
    def duration(self) -> float:
        return max(0, self._player.duration()) / 1000.0

    @property
    def paused(self) -> bool:
        return self._player.playbackState() != QMediaPlayer.PlaybackState.PlayingState

    def set_volume(self, volume: float) -> None:
        self._audio.setVolume(max(0.0, min(volume, 1.0)))
