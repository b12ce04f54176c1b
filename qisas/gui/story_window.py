"""Main application window for Qisas.

The window lists the stories on the left (with search and a
prophet / other filter), the selected story's positions grouped by
surah below them, and on the right the verses of the selected position
together with the player controls.

Story loading lives in :mod:`qisas.core.stories`, verse lookup in the
:class:`~qisas.core.passages.PassageResolver`, sequencing in the
:class:`~qisas.audio.PlaybackQueue`, and the glue between a selected
position and the queue in :class:`~qisas.core.selection.SelectionController`.
This window only implements the controller's
:class:`~qisas.core.selection.SelectionView` and forwards button
presses.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import (
    QAbstractItemView,
    QComboBox,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QPushButton,
    QScrollArea,
    QSpinBox,
    QSplitter,
    QTreeWidget,
    QTreeWidgetItem,
    QVBoxLayout,
    QWidget,
)

from ..audio.qt_output import QtAudioOutput
from ..audio.queue import PlaybackQueue
from ..config import AppConfig, SettingsStore, get_app_config
from ..connectors import get_default_connector, get_local_connector
from ..core.passages import AyahText, PassageResolver
from ..core.selection import SelectionController, SelectionView
from ..core.stories import NON_PROPHET, PROPHET, Position, Story, filter_stories, load_stories
from ..data.editions import RECITERS
from ..utils.paths import find_data_file
from .async_job import QtTaskRunner

logger = logging.getLogger(__name__)

_FILTERS = [
    ("الكل", "all"),
    ("قصص أنبياء", PROPHET),
    ("قصص أخرى", NON_PROPHET),
]

_ROLE_POSITION = Qt.ItemDataRole.UserRole
_ROLE_AYAH = Qt.ItemDataRole.UserRole + 1


class StoryWindow(QMainWindow, SelectionView):
    """Main window for the Qisas player.

    :param config: Application config; loaded from the environment if
        omitted.
    :param story_id: Story to open at start-up.
    :param link_params: Deep-link parameters (``surah``, ``from``,
        ``to``) applied to that story.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        story_id: Optional[str] = None,
        link_params: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__()
        self._config = config or get_app_config()
        self.settings = SettingsStore(config=self._config)
        self.runner = QtTaskRunner()
        self.resolver = PassageResolver(
            local=get_local_connector(self._config),
            remote=get_default_connector(self._config),
        )
        self.queue = PlaybackQueue(
            audio_source=self.resolver.remote,
            edition=self.settings.audio_edition,
            output_factory=lambda: QtAudioOutput(self),
            runner=self.runner,
        )
        self.controller: Optional[SelectionController] = None
        self.stories: List[Story] = []
        self._stories_by_id: Dict[str, Story] = {}
        self._search_timer = QTimer(self)
        self._search_timer.setSingleShot(True)
        self._search_timer.setInterval(200)
        self._search_timer.timeout.connect(self._refresh_story_list)

        self.init_ui()
        self._load_stories()
        if story_id:
            self.open_story(story_id, link_params or {})

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    def init_ui(self) -> None:
        self.setWindowTitle("قصص القرآن للأطفال")
        self.setGeometry(100, 100, 1100, 750)
        self.setLayoutDirection(Qt.LayoutDirection.RightToLeft)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.addWidget(self._create_story_panel())
        splitter.addWidget(self._create_player_panel())
        splitter.setStretchFactor(1, 2)
        self.setCentralWidget(splitter)
        self.statusBar().showMessage("اختر قصة للبدء")

    def _create_story_panel(self) -> QWidget:
        panel = QWidget()
        layout = QVBoxLayout(panel)

        self.search_edit = QLineEdit()
        self.search_edit.setPlaceholderText("ابحث عن قصة…")
        self.search_edit.textChanged.connect(lambda _text: self._search_timer.start())
        layout.addWidget(self.search_edit)

        self.filter_combo = QComboBox()
        for label, kind in _FILTERS:
            self.filter_combo.addItem(label, kind)
        self.filter_combo.currentIndexChanged.connect(lambda _i: self._refresh_story_list())
        layout.addWidget(self.filter_combo)

        self.story_list = QListWidget()
        self.story_list.itemActivated.connect(self._on_story_activated)
        self.story_list.itemClicked.connect(self._on_story_activated)
        layout.addWidget(self.story_list, 1)

        self.positions_header = QLabel("المواضع")
        layout.addWidget(self.positions_header)
        self.position_tree = QTreeWidget()
        self.position_tree.setHeaderHidden(True)
        self.position_tree.itemClicked.connect(self._on_position_clicked)
        layout.addWidget(self.position_tree, 2)
        return panel

    def _create_player_panel(self) -> QWidget:
        content = QWidget()
        layout = QVBoxLayout(content)

        self.story_title = QLabel("—")
        title_font = QFont()
        title_font.setPointSize(16)
        title_font.setBold(True)
        self.story_title.setFont(title_font)
        layout.addWidget(self.story_title)

        self.position_info = QLabel("")
        layout.addWidget(self.position_info)

        self.link_edit = QLineEdit()
        self.link_edit.setReadOnly(True)
        self.link_edit.setLayoutDirection(Qt.LayoutDirection.LeftToRight)
        layout.addWidget(self.link_edit)

        self.controls_box = QGroupBox("التشغيل")
        controls = QHBoxLayout(self.controls_box)
        self.prev_btn = QPushButton("⏮")
        self.prev_btn.setToolTip("الآية السابقة")
        self.prev_btn.clicked.connect(lambda: self._with_controller("prev"))
        self.play_btn = QPushButton("▶")
        self.play_btn.setToolTip("تشغيل")
        self.play_btn.clicked.connect(lambda: self._with_controller("toggle_play"))
        self.stop_btn = QPushButton("⏹")
        self.stop_btn.setToolTip("إيقاف")
        self.stop_btn.clicked.connect(lambda: self._with_controller("stop"))
        self.next_btn = QPushButton("⏭")
        self.next_btn.setToolTip("الآية التالية")
        self.next_btn.clicked.connect(lambda: self._with_controller("next"))
        for btn in (self.prev_btn, self.play_btn, self.stop_btn, self.next_btn):
            btn.setFixedWidth(48)
            controls.addWidget(btn)

        settings = self.settings.load()
        controls.addWidget(QLabel("القارئ:"))
        self.reciter_combo = QComboBox()
        for reciter in RECITERS:
            self.reciter_combo.addItem(reciter.name, reciter.id)
        idx = self.reciter_combo.findData(settings.audio_edition)
        if idx >= 0:
            self.reciter_combo.setCurrentIndex(idx)
        self.reciter_combo.currentIndexChanged.connect(self._on_reciter_changed)
        controls.addWidget(self.reciter_combo)

        controls.addWidget(QLabel("التكرار:"))
        self.repeat_spin = QSpinBox()
        self.repeat_spin.setRange(1, 99)
        self.repeat_spin.setValue(settings.repeat)
        self.repeat_spin.valueChanged.connect(self._on_repeat_changed)
        controls.addWidget(self.repeat_spin)
        layout.addWidget(self.controls_box)

        self.ayat_list = QListWidget()
        self.ayat_list.setWordWrap(True)
        self.ayat_list.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        ayah_font = QFont()
        ayah_font.setPointSize(18)
        self.ayat_list.setFont(ayah_font)
        layout.addWidget(self.ayat_list, 1)

        self.scroll_area = QScrollArea()
        self.scroll_area.setWidgetResizable(True)
        self.scroll_area.setWidget(content)
        return self.scroll_area

    # ------------------------------------------------------------------
    # Stories
    # ------------------------------------------------------------------

    def _load_stories(self) -> None:
        csv_path = self._config.get("data", "stories_csv")
        try:
            self.stories = load_stories(find_data_file(csv_path or "database.csv"))
        except (OSError, ValueError) as exc:
            logger.error("Could not load stories: %s", exc)
            self.statusBar().showMessage("تعذر تحميل القصص.")
            self.stories = []
        self._stories_by_id = {s.id: s for s in self.stories}
        self._refresh_story_list()

    def _refresh_story_list(self) -> None:
        kind = self.filter_combo.currentData() or "all"
        visible = filter_stories(self.stories, self.search_edit.text(), kind)
        self.story_list.clear()
        for story in visible:
            label = "قصص أنبياء" if story.type == PROPHET else "قصص أخرى"
            item = QListWidgetItem(f"{story.title}  ({label})")
            item.setData(_ROLE_POSITION, story.id)
            self.story_list.addItem(item)
        if not visible:
            self.statusBar().showMessage("لا توجد نتائج")

    def _on_story_activated(self, item: QListWidgetItem) -> None:
        self.open_story(item.data(_ROLE_POSITION), {})

    def open_story(self, story_id: str, link_params: Mapping[str, str]) -> None:
        """Show *story_id* and select its deep-linked or first position."""
        story = self._stories_by_id.get(story_id)
        if story is None:
            logger.error("Story not found: %s", story_id)
            self.show_error("تعذر تحميل القصة.")
            return
        if self.controller is not None and self.controller.story is story:
            return
        self.queue.stop()
        self.story_title.setText(story.title)
        self.positions_header.setText(f"المواضع ({len(story.positions)})")
        self._populate_positions(story)
        self.controller = SelectionController(
            story=story,
            resolver=self.resolver,
            queue=self.queue,
            settings=self.settings,
            view=self,
            runner=self.runner,
        )
        self.controller.apply_deep_link(link_params)

    def _populate_positions(self, story: Story) -> None:
        self.position_tree.clear()
        for surah, positions in story.positions_by_surah.items():
            name = positions[0].surah_name
            header = QTreeWidgetItem([f"سورة {name} ({surah})  —  {len(positions)} موضع"])
            for p in positions:
                child = QTreeWidgetItem([f"الموضع {p.position_index}: {p.ayah_from} – {p.ayah_to}"])
                child.setData(0, _ROLE_POSITION, p)
                header.addChild(child)
            self.position_tree.addTopLevelItem(header)

    def _on_position_clicked(self, item: QTreeWidgetItem, _column: int) -> None:
        position = item.data(0, _ROLE_POSITION)
        if position is None:
            item.setExpanded(not item.isExpanded())
            return
        if self.controller is not None:
            self.controller.select(position, auto_scroll=True)

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def _with_controller(self, action: str) -> None:
        if self.controller is None:
            self.statusBar().showMessage("اختر قصة للبدء")
            return
        getattr(self.controller, action)()

    def _on_reciter_changed(self, _index: int) -> None:
        edition = self.reciter_combo.currentData()
        if self.controller is not None:
            self.controller.change_reciter(edition)
        else:
            self.settings.update(audio_edition=edition)

    def _on_repeat_changed(self, value: int) -> None:
        if self.controller is not None:
            self.controller.change_repeat(value)
        else:
            self.settings.update(repeat=value)

    # ------------------------------------------------------------------
    # SelectionView
    # ------------------------------------------------------------------

    def show_position(self, position: Position) -> None:
        name = position.surah_name
        self.position_info.setText(
            f"الموضع {position.position_index} — سورة {name} ({position.surah_number}) — "
            f"الآيات {position.ayah_from}–{position.ayah_to}"
        )
        for i in range(self.position_tree.topLevelItemCount()):
            header = self.position_tree.topLevelItem(i)
            active = False
            for j in range(header.childCount()):
                child = header.child(j)
                p = child.data(0, _ROLE_POSITION)
                selected = p is not None and p.same_range(
                    position.surah_number, position.ayah_from, position.ayah_to
                )
                child.setSelected(selected)
                active = active or selected
            header.setExpanded(active)

    def show_link(self, link: str) -> None:
        self.link_edit.setText(link)

    def show_loading(self) -> None:
        self.ayat_list.clear()
        self.set_playing(False)

    def show_ayat(self, ayat: List[AyahText]) -> None:
        self.ayat_list.clear()
        for ayah in ayat:
            item = QListWidgetItem(f"({ayah.number}) {ayah.text}")
            item.setData(_ROLE_AYAH, ayah.number)
            self.ayat_list.addItem(item)

    def show_status(self, text: str) -> None:
        self.statusBar().showMessage(text)

    def highlight(self, ayah_number: Optional[int]) -> None:
        if ayah_number is None:
            self.ayat_list.clearSelection()
            return
        for row in range(self.ayat_list.count()):
            item = self.ayat_list.item(row)
            if item.data(_ROLE_AYAH) == ayah_number:
                self.ayat_list.setCurrentItem(item)
                self.ayat_list.scrollToItem(item, QAbstractItemView.ScrollHint.PositionAtCenter)
                return

    def set_playing(self, playing: bool) -> None:
        self.play_btn.setText("⏸" if playing else "▶")
        self.play_btn.setToolTip("إيقاف مؤقت" if playing else "تشغيل")

    def scroll_to_controls(self) -> None:
        self.scroll_area.ensureWidgetVisible(self.controls_box)

    def show_error(self, text: str) -> None:
        self.statusBar().showMessage(text, 3000)

    # ------------------------------------------------------------------

    def closeEvent(self, event) -> None:
        self.queue.close()
        super().closeEvent(event)
