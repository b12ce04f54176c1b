"""Text and audio edition catalogue.

Editions are identified by the ids used by the alquran.cloud API.  The
text edition is fixed: every verse shown in the application comes from
``DEFAULT_TEXT_EDITION`` and the offline JSON files are generated for
that edition only.  Audio editions (reciters) are user selectable, but
only from the list below.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List


DEFAULT_TEXT_EDITION = "quran-uthmani-quran-academy"
DEFAULT_AUDIO_EDITION = "ar.alafasy"


@dataclass(frozen=True)
class Reciter:
    """An audio edition together with its Arabic display name."""

    id: str
    name: str


RECITERS: List[Reciter] = [
    Reciter("ar.abdulbasitmurattal", "عبد الباسط (مرتل)"),
    Reciter("ar.alafasy", "مشاري العفاسي"),
    Reciter("ar.husary", "محمود الحصري"),
    Reciter("ar.hudhaify", "علي الحذيفي"),
    Reciter("ar.minshawi", "محمد صديق المنشاوي"),
    Reciter("ar.muhammadayyoub", "محمد أيوب"),
    Reciter("ar.aymanswoaid", "أيمن سويد"),
    Reciter("ar.mahermuaiqly", "ماهر المعيقلي"),
]

#: Audio edition id → Arabic display name
RECITER_NAMES: Dict[str, str] = {r.id: r.name for r in RECITERS}

ALLOWED_AUDIO_IDS: List[str] = [r.id for r in RECITERS]


def reciter_name(edition_id: str) -> str:
    """Return the display name for *edition_id*, or the id itself."""
    return RECITER_NAMES.get(edition_id, edition_id)


__all__ = [
    "DEFAULT_TEXT_EDITION",
    "DEFAULT_AUDIO_EDITION",
    "Reciter",
    "RECITERS",
    "RECITER_NAMES",
    "ALLOWED_AUDIO_IDS",
    "reciter_name",
]
