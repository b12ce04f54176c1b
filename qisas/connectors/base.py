"""Base interfaces for connectors.

Connectors encapsulate the logic for retrieving verse text and
recitation audio.  A text source must implement :meth:`get_ayah_text`;
an audio source (an "audio edition source") must implement
:meth:`lookup_audio`.  A single connector may implement both.
"""

from __future__ import annotations
from typing import Optional


class BaseTextSource:
    """Abstract base class for verse text sources."""

    def get_ayah_text(self, surah: int, ayah: int, edition: str) -> str:
        """Return the text of one verse in the given text edition.

        Implementations raise when the verse cannot be obtained; an empty
        string means the source answered but had no text.
        """
        raise NotImplementedError


class BaseAudioSource:
    """Abstract base class for audio edition sources."""

    def lookup_audio(self, surah: int, ayah: int, edition: str) -> Optional[str]:
        """Return a playable URL for one verse recited in *edition*.

        ``None`` means the source has no audio for this verse.  Lookups
        may be slow and may raise; callers run them off the GUI thread
        and treat any exception as "no audio".
        """
        raise NotImplementedError
