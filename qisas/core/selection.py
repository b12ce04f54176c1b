"""Selection controller: bind a chosen story position to the playback queue.

Whenever a position is selected (by a click, by a deep link, or
automatically when a story opens) the controller

1. stops the current queue so two passages never play at once,
2. resolves the passage's verse texts through the
   :class:`~qisas.core.passages.PassageResolver`,
3. rebuilds the queue with one :class:`~qisas.audio.PlayableItem` per
   verse and leaves it stopped until the user presses play.

Only user clicks request auto-scroll to the player controls.  The
controller knows nothing about widgets; it talks to a
:class:`SelectionView`, implemented by the main window and by fakes in
the tests.
"""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional

from ..audio.output import AudioOutput, percent_complete
from ..audio.queue import PlayableItem, PlaybackQueue, PlaybackState
from ..audio.runner import InlineRunner, TaskRunner
from ..config import SettingsStore
from ..data.editions import ALLOWED_AUDIO_IDS, reciter_name
from ..utils.links import build_link, link_int
from .passages import AyahText, PassageResolver
from .stories import Position, Story

logger = logging.getLogger(__name__)

STATUS_PREPARING = "جارٍ التحضير…"
STATUS_ENDED = "انتهى التشغيل"
ERROR_LOADING = "حدث خطأ أثناء التحميل."


def format_ready(count: int) -> str:
    return f"المقطع جاهز: {count} آية"


def format_playing(index: int, total: int, percent: int) -> str:
    """Status line for the verse at *index* (0-based) of *total*."""
    return f"تشغيل: آية {index + 1}/{total} — تقدم {percent}%"


class SelectionView:
    """What the controller needs from the user interface."""

    def show_position(self, position: Position) -> None:
        pass

    def show_link(self, link: str) -> None:
        pass

    def show_loading(self) -> None:
        pass

    def show_ayat(self, ayat: List[AyahText]) -> None:
        pass

    def show_status(self, text: str) -> None:
        pass

    def highlight(self, ayah_number: Optional[int]) -> None:
        pass

    def set_playing(self, playing: bool) -> None:
        pass

    def scroll_to_controls(self) -> None:
        pass

    def show_error(self, text: str) -> None:
        pass


class SelectionController:
    """Mediates between the story view, the resolver and the queue.

    :param story: The story whose positions can be selected.
    :param resolver: Resolves verse texts.
    :param queue: The playback queue to rebind on every selection.
    :param settings: User settings (reciter, repeat count).
    :param view: Receives display updates.
    :param runner: Executes passage resolution; defaults to inline.
    """

    def __init__(
        self,
        story: Story,
        resolver: PassageResolver,
        queue: PlaybackQueue,
        settings: SettingsStore,
        view: SelectionView,
        runner: Optional[TaskRunner] = None,
    ) -> None:
        self.story = story
        self.resolver = resolver
        self.queue = queue
        self.settings = settings
        self.view = view
        self.runner = runner or InlineRunner()
        self.selected: Optional[Position] = None
        self.link = build_link({"storyId": story.id})
        self._generation = 0
        self._ayah_numbers: List[int] = []
        self._last_index = -1

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, position: Position, auto_scroll: bool = False) -> None:
        """Select *position*; playback stays stopped until play is pressed.

        The queue is emptied straight away, so play does nothing until the
        new verses have been resolved.
        """
        self.queue.set_queue([])
        self._ayah_numbers = []
        self._last_index = -1
        self.view.set_playing(False)
        self.selected = position
        self.link = build_link({
            "storyId": self.story.id,
            "surah": position.surah_number,
            "from": position.ayah_from,
            "to": position.ayah_to,
        })
        self.view.show_link(self.link)
        self.view.show_position(position)
        if auto_scroll:
            self.view.scroll_to_controls()
        self.view.show_loading()
        self.view.show_status(STATUS_PREPARING)

        self._generation += 1
        generation = self._generation
        settings = self.settings.load()
        self.runner.submit(
            self.resolver.resolve,
            position.surah_number,
            position.ayah_from,
            position.ayah_to,
            settings.text_edition,
            settings.audio_edition,
            on_result=lambda ayat: self._on_resolved(generation, position, ayat),
            on_error=lambda exc: self._on_failed(generation, position, exc),
        )

    def apply_deep_link(self, params: Mapping[str, str]) -> None:
        """Select the position named by *params*, or the story's first one.

        Never auto-scrolls.
        """
        surah = link_int(params, "surah")
        ayah_from = link_int(params, "from")
        ayah_to = link_int(params, "to")
        if surah and ayah_from and ayah_to:
            position = self.story.find_position(surah, ayah_from, ayah_to) or Position(
                position_index=0,
                surah_number=surah,
                ayah_from=ayah_from,
                ayah_to=ayah_to,
            )
            self.select(position, auto_scroll=False)
        elif self.story.positions:
            self.select(self.story.positions[0], auto_scroll=False)

    def _on_resolved(self, generation: int, position: Position, ayat: List[AyahText]) -> None:
        if generation != self._generation:
            logger.debug("Discarding stale passage for %s", position)
            return
        settings = self.settings.load()
        self.view.show_ayat(ayat)
        self._ayah_numbers = [a.number for a in ayat]
        self._last_index = -1
        items = [PlayableItem(position.surah_number, a.number) for a in ayat]
        self.queue.set_queue(items, settings.repeat, self._on_progress, self._on_end)
        self.view.show_status(format_ready(len(ayat)))

    def _on_failed(self, generation: int, position: Position, exc: BaseException) -> None:
        if generation != self._generation:
            return
        logger.error("Loading %s failed: %s", position, exc)
        self.view.show_status("")
        self.view.show_error(ERROR_LOADING)

    # ------------------------------------------------------------------
    # Queue callbacks
    # ------------------------------------------------------------------

    def _on_progress(self, index: int, output: Optional[AudioOutput]) -> None:
        total = len(self._ayah_numbers)
        in_range = 0 <= index < total
        self.view.set_playing(in_range and self.queue.state is PlaybackState.PLAYING)
        if in_range:
            if index != self._last_index:
                self.view.highlight(self._ayah_numbers[index])
                self._last_index = index
            self.view.show_status(format_playing(index, total, percent_complete(output)))
        else:
            self.view.show_status("")
            self.view.highlight(None)
            self._last_index = -1

    def _on_end(self) -> None:
        self.view.show_status(STATUS_ENDED)
        self.view.set_playing(False)
        self.view.highlight(None)
        self._last_index = -1

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def toggle_play(self) -> None:
        self.queue.toggle()

    def stop(self) -> None:
        self.queue.stop()
        self.view.highlight(None)
        self.view.show_status("")
        self.view.set_playing(False)

    def next(self) -> None:
        self.queue.next()

    def prev(self) -> None:
        self.queue.prev()

    def change_repeat(self, count) -> None:
        settings = self.settings.update(repeat=count)
        self.queue.set_repeat_count(settings.repeat)

    def change_reciter(self, edition: str) -> None:
        """Persist the reciter and reload the current position.

        Reloading builds fresh, unresolved items, so every verse is looked
        up again with the new edition.  Editions outside the reciter list
        are ignored.
        """
        if edition not in ALLOWED_AUDIO_IDS:
            logger.warning("Ignoring unknown audio edition %r", edition)
            return
        self.settings.update(audio_edition=edition)
        logger.info("Reciter changed to %s", reciter_name(edition))
        if self.selected is not None:
            self.select(self.selected, auto_scroll=False)
