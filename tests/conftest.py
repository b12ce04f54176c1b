"""Shared fakes for the Qisas test-suite.

Nothing here touches Qt or the network: the audio output is advanced by
hand and lookups are either answered inline or held until released.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

import pytest

from qisas.audio.output import AudioOutput
from qisas.audio.queue import PlaybackQueue
from qisas.audio.runner import TaskRunner
from qisas.config import SettingsStore
from qisas.connectors.base import BaseAudioSource, BaseTextSource


class FakeAudioOutput(AudioOutput):
    """Timer-free output; tests call :meth:`finish`, :meth:`tick`, :meth:`fail`."""

    def __init__(self, duration: float = 10.0) -> None:
        super().__init__()
        self.url: Optional[str] = None
        self.loaded: List[str] = []
        self._paused = True
        self._time = 0.0
        self._duration = duration
        self.fail_play = False
        self.released = False
        self.rewinds = 0

    def load(self, url: str) -> None:
        self.url = url
        self.loaded.append(url)
        self._time = 0.0

    def play(self) -> None:
        if self.fail_play:
            raise RuntimeError("playback rejected")
        self._paused = False

    def pause(self) -> None:
        self._paused = True

    def rewind(self) -> None:
        self._time = 0.0
        self.rewinds += 1

    def release(self) -> None:
        self._paused = True
        self.released = True
        super().release()

    @property
    def current_time(self) -> float:
        return self._time

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def paused(self) -> bool:
        return self._paused

    # test drivers
    def tick(self, seconds: float = 1.0) -> None:
        self._time = min(self._duration, self._time + seconds)
        self._notify_tick()

    def finish(self) -> None:
        self._time = self._duration
        self._notify_ended()

    def fail(self, message: str = "decode error") -> None:
        self._notify_error(message)


class DeferredRunner(TaskRunner):
    """Holds submissions until the test releases them."""

    def __init__(self) -> None:
        self.pending: List[Tuple[Callable, tuple, Callable, Callable]] = []

    def submit(self, fn, *args, on_result, on_error) -> None:
        self.pending.append((fn, args, on_result, on_error))

    def run_next(self) -> None:
        fn, args, on_result, on_error = self.pending.pop(0)
        try:
            result = fn(*args)
        except Exception as exc:
            on_error(exc)
        else:
            on_result(result)

    def run_all(self) -> None:
        while self.pending:
            self.run_next()


class ScriptedAudioSource(BaseAudioSource):
    """Answers ``lookup_audio`` from a table; missing verses get a URL.

    *failures* maps ``(surah, ayah)`` to an exception to raise or to
    ``None`` for an empty answer.
    """

    def __init__(self, failures: Optional[Dict[Tuple[int, int], object]] = None) -> None:
        self.failures = failures or {}
        self.calls: List[Tuple[int, int, str]] = []

    def lookup_audio(self, surah: int, ayah: int, edition: str) -> Optional[str]:
        self.calls.append((surah, ayah, edition))
        if (surah, ayah) in self.failures:
            outcome = self.failures[(surah, ayah)]
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return f"https://cdn.test/{edition}/{surah}/{ayah}.mp3"


class DictTextSource(BaseTextSource):
    """Remote text stand-in backed by a dict; missing verses raise."""

    def __init__(self, texts: Optional[Dict[Tuple[int, int], str]] = None) -> None:
        self.texts = texts or {}
        self.calls: List[Tuple[int, int, str]] = []

    def get_ayah_text(self, surah: int, ayah: int, edition: str) -> str:
        self.calls.append((surah, ayah, edition))
        try:
            return self.texts[(surah, ayah)]
        except KeyError:
            raise ConnectionError(f"no text for {surah}:{ayah}") from None


class Recorder:
    """Collects progress and end callbacks."""

    def __init__(self) -> None:
        self.progress: List[int] = []
        self.ends = 0

    def on_progress(self, index, output) -> None:
        self.progress.append(index)

    def on_end(self) -> None:
        self.ends += 1

    @property
    def positioned(self) -> List[int]:
        return [i for i in self.progress if i >= 0]


class OutputFactory:
    def __init__(self) -> None:
        self.created: List[FakeAudioOutput] = []

    def __call__(self) -> FakeAudioOutput:
        out = FakeAudioOutput()
        self.created.append(out)
        return out

    @property
    def last(self) -> FakeAudioOutput:
        return self.created[-1]


@pytest.fixture
def source() -> ScriptedAudioSource:
    return ScriptedAudioSource()


@pytest.fixture
def outputs() -> OutputFactory:
    return OutputFactory()


@pytest.fixture
def edition_box() -> Dict[str, str]:
    return {"edition": "ar.alafasy"}


@pytest.fixture
def queue(source, outputs, edition_box) -> PlaybackQueue:
    return PlaybackQueue(
        audio_source=source,
        edition=lambda: edition_box["edition"],
        output_factory=outputs,
    )


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def settings_store(tmp_path, monkeypatch) -> SettingsStore:
    monkeypatch.delenv("QISAS_SETTINGS", raising=False)
    return SettingsStore(path=tmp_path / "settings.json")
