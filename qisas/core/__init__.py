"""
Core (non-GUI) logic for Qisas.

* :mod:`~qisas.core.stories`   – story catalogue from the CSV file
* :mod:`~qisas.core.passages`  – verse text resolution, local first
* :mod:`~qisas.core.selection` – binds a selected position to the
  playback queue and formats status for the view
"""

from .passages import AyahText, Passage, PassageResolver, UNAVAILABLE_TEXT  # noqa: F401
from .selection import SelectionController, SelectionView  # noqa: F401
from .stories import Position, Story, filter_stories, load_stories  # noqa: F401

__all__ = [
    "AyahText",
    "Passage",
    "PassageResolver",
    "UNAVAILABLE_TEXT",
    "SelectionController",
    "SelectionView",
    "Position",
    "Story",
    "filter_stories",
    "load_stories",
]
