"""LocalTextConnector: offline verse text from per-surah JSON files.

The prefetch tool (:mod:`qisas.tools.prefetch`) writes one file per
surah into the text directory::

    <text_dir>/<surah>.json
    {
        "edition": "quran-uthmani-quran-academy",
        "surah": 12,
        "ayahs": {"4": "...", "5": "..."}
    }

Only the verses referenced by the stories are present, so a lookup for
an absent verse is normal and callers fall back to the remote source.
Files are read once per surah and kept in memory for the lifetime of
the connector.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .base import BaseTextSource
from ..data.editions import DEFAULT_TEXT_EDITION
from ..utils.paths import find_data_dir

logger = logging.getLogger(__name__)


class LocalTextConnector(BaseTextSource):
    """Read verse text from ``<text_dir>/<surah>.json``.

    :param text_dir: Directory holding the JSON files.  Defaults to a
        ``text`` directory found by :func:`find_data_dir`.
    :param edition: The only edition these files contain.
    """

    def __init__(
        self,
        text_dir: Optional[str] = None,
        edition: str = DEFAULT_TEXT_EDITION,
    ) -> None:
        self._dir = Path(text_dir) if text_dir else find_data_dir("text")
        self.edition = edition
        # surah number → parsed file contents
        self._cache: Dict[int, Dict[str, Any]] = {}

    @property
    def text_dir(self) -> Path:
        return self._dir

    def surah_path(self, surah: int) -> Path:
        return self._dir / f"{int(surah)}.json"

    def load_surah(self, surah: int) -> Dict[str, Any]:
        """Return the parsed file for *surah*, reading it at most once.

        :raises FileNotFoundError: If the file does not exist.
        :raises ValueError: If the file is not a JSON object with ``ayahs``.
        """
        surah = int(surah)
        data = self._cache.get(surah)
        if data is not None:
            return data
        path = self.surah_path(surah)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict) or not isinstance(data.get("ayahs"), dict):
            raise ValueError(f"Malformed surah file: {path}")
        self._cache[surah] = data
        logger.debug("Loaded %d local ayahs for surah %d", len(data["ayahs"]), surah)
        return data

    def lookup(self, surah: int, ayah: int) -> Optional[str]:
        """Return the local text for one verse, or ``None`` if absent.

        Errors reading the surah file propagate.
        """
        ayahs = self.load_surah(surah)["ayahs"]
        text = ayahs.get(str(ayah))
        return text or None

    def get_ayah_text(self, surah: int, ayah: int, edition: str) -> str:
        if edition != self.edition:
            raise LookupError(f"Local files only contain edition {self.edition!r}")
        text = self.lookup(surah, ayah)
        if text is None:
            raise LookupError(f"Ayah {surah}:{ayah} not available locally")
        return text
