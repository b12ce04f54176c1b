"""
Top-level package for Qisas, a Quran stories player.

Stories are read from a CSV catalogue; each story has verse ranges
("positions") that can be displayed and recited verse by verse with a
selectable reciter and repeat count.

Example usage::

    from qisas import get_app_config, get_default_connector, load_stories

    cfg = get_app_config()
    stories = load_stories()
    source = get_default_connector(cfg)
    print(source.get_ayah_text(12, 4, "quran-uthmani-quran-academy"))

The GUI lives in :mod:`qisas.gui` and is not imported here so that the
package can be used without Qt.
"""

from .config import AppConfig, SettingsStore, get_app_config  # noqa: F401
from .connectors import get_default_connector, get_local_connector  # noqa: F401
from .core.stories import Story, load_stories  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "SettingsStore",
    "get_app_config",
    "get_default_connector",
    "get_local_connector",
    "Story",
    "load_stories",
]
