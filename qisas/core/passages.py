"""Passage resolution: turn a verse range into an ordered list of texts.

A :class:`Passage` names a surah and an inclusive verse range.  The
:class:`PassageResolver` returns the text of every verse in the range,
trying the offline JSON files first and asking the remote API only for
verses that are missing locally.  Audio URLs are *not*
looked up here; the playback queue resolves them lazily when a verse is
about to play.

Results are cached in memory for the lifetime of the resolver, keyed by
``(surah, from, to, text_edition, audio_edition)``.  The application
never writes verse text, so entries are never invalidated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Dict, List, Optional, Tuple

from ..connectors.base import BaseTextSource
from ..connectors.local_text import LocalTextConnector
from ..data.editions import DEFAULT_AUDIO_EDITION, DEFAULT_TEXT_EDITION

logger = logging.getLogger(__name__)

#: Shown in place of a verse whose text could not be obtained at all.
UNAVAILABLE_TEXT = "(تعذر تحميل الآية)"


@dataclass(frozen=True)
class Passage:
    """A surah number and an inclusive verse range ``[ayah_from, ayah_to]``."""

    surah: int
    ayah_from: int
    ayah_to: int

    def __post_init__(self) -> None:
        for name in ("surah", "ayah_from", "ayah_to"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if self.ayah_from > self.ayah_to:
            raise ValueError(
                f"Invalid range {self.surah}:{self.ayah_from}-{self.ayah_to}"
            )

    def __len__(self) -> int:
        return self.ayah_to - self.ayah_from + 1

    def ayah_numbers(self) -> range:
        return range(self.ayah_from, self.ayah_to + 1)


@dataclass(frozen=True)
class AyahText:
    """One verse of a resolved passage."""

    number: int
    text: str


CacheKey = Tuple[int, int, int, str, str]


class PassageResolver:
    """Resolve passages to verse texts, local files first.

    :param local: Offline source.  Only consulted for its own edition.
    :param remote: Fallback source for verses missing locally.
    """

    def __init__(self, local: LocalTextConnector, remote: BaseTextSource) -> None:
        self.local = local
        self.remote = remote
        self._cache: Dict[CacheKey, List[AyahText]] = {}
        self._lock = Lock()

    def _lookup_local_first(self, surah: int, ayah: int, edition: str) -> str:
        if edition == self.local.edition:
            try:
                text = self.local.lookup(surah, ayah)
            except (OSError, ValueError):
                text = None
            if text:
                return text
        return self.remote.get_ayah_text(surah, ayah, edition)

    def _lookup_or_sentinel(self, surah: int, ayah: int, edition: str) -> str:
        try:
            return self._lookup_local_first(surah, ayah, edition)
        except Exception as exc:
            logger.warning("Text lookup failed for %d:%d (%s): %s", surah, ayah, edition, exc)
            return UNAVAILABLE_TEXT

    def _resolve_uncached(self, passage: Passage, text_edition: str) -> List[AyahText]:
        surah = passage.surah
        local_texts: Optional[Dict[str, str]] = None
        if text_edition == self.local.edition:
            try:
                local_texts = self.local.load_surah(surah)["ayahs"]
            except (OSError, ValueError) as exc:
                logger.warning("Local text load failed for surah %d, falling back per-ayah: %s", surah, exc)

        result: List[AyahText] = []
        for n in passage.ayah_numbers():
            text = local_texts.get(str(n)) if local_texts is not None else None
            if not text:
                text = self._lookup_or_sentinel(surah, n, text_edition)
            result.append(AyahText(n, text))
        return result

    def resolve(
        self,
        surah: int,
        ayah_from: int,
        ayah_to: int,
        text_edition: str = DEFAULT_TEXT_EDITION,
        audio_edition: str = DEFAULT_AUDIO_EDITION,
    ) -> List[AyahText]:
        """Return the verses ``ayah_from..ayah_to`` of *surah* in order.

        A verse that cannot be fetched from any source is returned with
        :data:`UNAVAILABLE_TEXT` instead of failing the whole range.

        :raises ValueError: If the range is invalid.
        """
        passage = Passage(surah, ayah_from, ayah_to)
        key: CacheKey = (surah, ayah_from, ayah_to, text_edition, audio_edition)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return list(cached)
        result = self._resolve_uncached(passage, text_edition)
        with self._lock:
            self._cache.setdefault(key, result)
        return list(result)

    def resolve_passage(self, passage: Passage, **kwargs) -> List[AyahText]:
        return self.resolve(passage.surah, passage.ayah_from, passage.ayah_to, **kwargs)
