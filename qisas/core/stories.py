"""Story catalogue loaded from the stories CSV.

Each CSV row maps one *position* of a story to a verse range.  The file
is edited by hand, so rows after the first row of a story usually leave
the story columns blank; those cells inherit the value of the previous
row ("carry-forward").  Expected columns::

    item_id, item_name_en, item_name_ar, type, positions,
    surah_number, surah_name, surah_name_ar, aya_from, aya_to

The parser returns :class:`Story` objects in file order, each with its
positions sorted by position index and grouped by surah.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ..utils.paths import find_data_file
from .passages import Passage

logger = logging.getLogger(__name__)

CARRY_KEYS: Tuple[str, ...] = ("item_id", "item_name_en", "item_name_ar", "type", "positions")

PROPHET = "prophet"
NON_PROPHET = "non-prophet"

_RE_SLUG = re.compile(r"[^a-z0-9]+")


@dataclass
class Position:
    """One verse range belonging to a story."""

    position_index: int
    surah_number: int
    ayah_from: int
    ayah_to: int
    surah_name_en: str = ""
    surah_name_ar: str = ""

    def passage(self) -> Passage:
        """Return the verse range as a validated :class:`Passage`."""
        return Passage(self.surah_number, self.ayah_from, self.ayah_to)

    def same_range(self, surah: int, ayah_from: int, ayah_to: int) -> bool:
        return (self.surah_number, self.ayah_from, self.ayah_to) == (surah, ayah_from, ayah_to)

    @property
    def surah_name(self) -> str:
        return self.surah_name_ar or self.surah_name_en


@dataclass
class Story:
    id: str
    name_ar: str = ""
    name_en: str = ""
    type: str = NON_PROPHET
    positions: List[Position] = field(default_factory=list)

    @property
    def title(self) -> str:
        return self.name_ar or self.name_en or "—"

    @property
    def positions_by_surah(self) -> Dict[int, List[Position]]:
        """Positions grouped by surah, surahs in ascending order."""
        grouped: Dict[int, List[Position]] = {}
        for p in self.positions:
            grouped.setdefault(p.surah_number, []).append(p)
        return {k: sorted(grouped[k], key=lambda p: p.position_index) for k in sorted(grouped)}

    def find_position(self, surah: int, ayah_from: int, ayah_to: int) -> Optional[Position]:
        for p in self.positions:
            if p.same_range(surah, ayah_from, ayah_to):
                return p
        return None


def slugify(value: str) -> str:
    """Lower-case *value* and collapse non-alphanumeric runs into ``-``."""
    return _RE_SLUG.sub("-", str(value or "").lower()).strip("-")


def story_type(raw: str) -> str:
    t = (raw or "").strip().lower()
    if t == "نبي":
        return PROPHET
    if "prophet" in t and "non" not in t:
        return PROPHET
    return NON_PROPHET


def _to_int(value: Optional[str]) -> int:
    try:
        return int(float(value)) if value not in (None, "") else 0
    except ValueError:
        return 0


def parse_csv(text: str) -> List[Dict[str, str]]:
    """Parse CSV text into row dictionaries keyed by the header row.

    A UTF-8 byte order mark on the header is dropped, cells are stripped
    and rows whose cells are all blank are skipped.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    reader = csv.reader(io.StringIO(text))
    rows = list(reader)
    if not rows:
        return []
    headers = [h.replace("\ufeff", "").strip() for h in rows[0]]
    out: List[Dict[str, str]] = []
    for row in rows[1:]:
        if not any(cell.strip() for cell in row):
            continue
        out.append({h: (row[i] if i < len(row) else "").strip() for i, h in enumerate(headers)})
    return out


def carry_forward(rows: Iterable[Dict[str, str]]) -> List[Dict[str, str]]:
    """Fill blank story columns from the previous row."""
    normalized: List[Dict[str, str]] = []
    last: Dict[str, str] = {}
    for row in rows:
        obj = dict(row)
        for k in CARRY_KEYS:
            if not obj.get(k):
                obj[k] = last.get(k, "")
        last = obj
        normalized.append(obj)
    return normalized


def normalize_stories(rows: Iterable[Dict[str, str]]) -> List[Story]:
    """Group carried-forward CSV rows into :class:`Story` objects."""
    stories: Dict[str, Story] = {}
    for r in carry_forward(rows):
        name_en = r.get("item_name_en", "")
        story_id = (r.get("item_id") or "").strip() or slugify(name_en)
        if not story_id:
            continue
        story = stories.get(story_id)
        if story is None:
            story = stories[story_id] = Story(
                id=story_id,
                name_ar=r.get("item_name_ar", ""),
                name_en=name_en,
                type=story_type(r.get("type", "")),
            )
        pos_idx = _to_int(r.get("positions") or r.get("position") or r.get("pos")) or len(story.positions) + 1
        story.positions.append(
            Position(
                position_index=pos_idx,
                surah_number=_to_int(r.get("surah_number")),
                ayah_from=_to_int(r.get("aya_from")),
                ayah_to=_to_int(r.get("aya_to")),
                surah_name_en=r.get("surah_name", ""),
                surah_name_ar=r.get("surah_name_ar", ""),
            )
        )
    for story in stories.values():
        story.positions.sort(key=lambda p: p.position_index)
    return list(stories.values())


def load_stories(path: Union[str, Path, None] = None) -> List[Story]:
    """Read and normalise the stories CSV.

    :param path: CSV file; defaults to ``database.csv`` located with
        :func:`find_data_file`.
    :raises FileNotFoundError: If the file cannot be found.
    """
    csv_path = Path(path) if path else find_data_file("database.csv")
    with open(csv_path, "r", encoding="utf-8") as f:
        stories = normalize_stories(parse_csv(f.read()))
    logger.info("Loaded %d stories from %s", len(stories), csv_path)
    return stories


def filter_stories(stories: Iterable[Story], query: str = "", kind: str = "all") -> List[Story]:
    """Return stories whose Arabic name contains *query* and whose type matches *kind*.

    *kind* is ``"all"``, ``"prophet"`` or ``"non-prophet"``.
    """
    q = (query or "").strip()
    return [
        s for s in stories
        if (kind == "all" or s.type == kind) and (not q or q in s.name_ar)
    ]
