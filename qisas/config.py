"""
Configuration management for Qisas.

The application reads its default settings from a JSON file shipped
inside the package (``config_default_settings.json``).  These settings
can be overridden by a user-specific JSON file whose path is given in
the ``QISAS_CONFIG`` environment variable.  This module provides a
simple API to load and merge configuration data.

Separate from the application configuration are the *user settings*
(selected reciter, repeat count).  They change while the application
runs and are persisted as JSON by :class:`SettingsStore`.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import asdict, dataclass, field
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Optional

from .data.editions import DEFAULT_AUDIO_EDITION, DEFAULT_TEXT_EDITION

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE: Path = Path(__file__).resolve().parent / "config_default_settings.json"
DEFAULT_SETTINGS_FILE: Path = Path.home() / ".qisas" / "settings.json"


@dataclass
class AppConfig:
    """In-memory representation of the application configuration.

    Attributes mirror the keys in the JSON file.  Additional keys
    provided by the user will be preserved in the internal ``data``
    dictionary but may not have dedicated attributes on this class.
    """

    data: Dict[str, Any] = field(default_factory=dict)

    def get(self, *keys: str, default: Optional[Any] = None) -> Any:
        """Retrieve a nested configuration value safely.

        Usage::

            config = load_config()
            base_url = config.get("api", "base_url", default="")

        :param keys: Sequence of keys describing a path in the config.
        :param default: Value returned when the path does not exist.
        :return: The configuration value or ``default``.
        """

        current: Any = self.data
        for key in keys:
            if not isinstance(current, dict) or key not in current:
                return default
            current = current[key]
        return current

    def merge(self, other: Dict[str, Any]) -> None:
        """Merge another dictionary into this configuration.

        When keys exist in both ``self.data`` and ``other``, values from
        ``other`` take precedence.  Nested dictionaries are merged
        recursively.
        """

        def _merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
            result = dict(a)
            for k, v in b.items():
                if isinstance(v, dict) and isinstance(a.get(k), dict):
                    result[k] = _merge(a[k], v)
                else:
                    result[k] = v
            return result

        self.data = _merge(self.data, other)


def load_config(user_config_path: Optional[os.PathLike] = None) -> AppConfig:
    """Load configuration from the default and optional user files.

    :param user_config_path: Path to an optional JSON override file.
    :return: A fully merged :class:`AppConfig`.
    """

    with open(DEFAULT_CONFIG_FILE, "r", encoding="utf-8") as f:
        base = json.load(f)
    cfg = AppConfig(base)
    if user_config_path:
        user_path = Path(user_config_path)
        if user_path.is_file():
            with open(user_path, "r", encoding="utf-8") as uf:
                overrides = json.load(uf)
            cfg.merge(overrides)
        else:
            logger.warning("Config override not found: %s", user_path)
    return cfg


def get_app_config() -> AppConfig:
    """Convenience accessor to obtain the global application configuration.

    The loader honours the ``QISAS_CONFIG`` environment variable.  If
    set, this variable should point to a JSON file containing user
    specific configuration overrides.
    """

    override_path = os.environ.get("QISAS_CONFIG")
    return load_config(override_path)


# ---------------------------------------------------------------------------
# User settings
# ---------------------------------------------------------------------------


@dataclass
class UserSettings:
    """Preferences chosen by the user in the player."""

    audio_edition: str = DEFAULT_AUDIO_EDITION
    repeat: int = 1
    text_edition: str = DEFAULT_TEXT_EDITION


class SettingsStore:
    """JSON-file backed store for :class:`UserSettings`.

    Every :meth:`load` reads the file again, so a preference changed by
    one part of the application is visible to every other part on its
    next read.  The text edition is not user selectable: whatever value
    is on disk, :meth:`load` returns :data:`DEFAULT_TEXT_EDITION` and
    rewrites the file when it had to migrate it.

    :param path: File to read and write.  When omitted, the
        ``QISAS_SETTINGS`` environment variable, then the ``settings.path``
        config key, then ``~/.qisas/settings.json`` are used.
    """

    def __init__(
        self,
        path: Optional[os.PathLike] = None,
        config: Optional[AppConfig] = None,
    ) -> None:
        if path is None:
            path = os.environ.get("QISAS_SETTINGS") or (
                config.get("settings", "path") if config is not None else None
            )
        self.path = Path(path) if path else DEFAULT_SETTINGS_FILE
        # serialises writers; readers rely on the atomic replace
        self._lock = RLock()
        self._defaults = UserSettings(
            audio_edition=(
                config.get("audio", "default_edition", default=DEFAULT_AUDIO_EDITION)
                if config is not None
                else DEFAULT_AUDIO_EDITION
            ),
            repeat=_coerce_repeat(
                config.get("audio", "default_repeat", default=1)
                if config is not None
                else 1
            ),
        )

    def _read(self) -> Optional[Dict[str, Any]]:
        if not self.path.is_file():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError):
            logger.warning("Unreadable settings file %s, using defaults", self.path)
            return None
        return raw if isinstance(raw, dict) else None

    def _write(self, settings: UserSettings) -> None:
        """Replace the file atomically; readers see the old or the new content."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), prefix=".settings-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(asdict(settings), f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

    def load(self) -> UserSettings:
        """Return the current settings merged over the defaults."""
        stored = self._read()
        merged = asdict(self._defaults)
        if stored:
            merged.update({k: v for k, v in stored.items() if k in merged})
        merged["repeat"] = _coerce_repeat(merged.get("repeat"))
        merged["text_edition"] = DEFAULT_TEXT_EDITION
        settings = UserSettings(**merged)
        if stored and stored.get("text_edition") != DEFAULT_TEXT_EDITION:
            try:
                with self._lock:
                    self._write(settings)
            except OSError:
                logger.warning("Could not migrate settings file %s", self.path)
        return settings

    def update(self, **partial: Any) -> UserSettings:
        """Merge *partial* into the stored settings and persist them."""
        with self._lock:
            current = asdict(self.load())
            unknown = set(partial) - set(current)
            if unknown:
                raise KeyError(f"Unknown settings: {', '.join(sorted(unknown))}")
            current.update(partial)
            current["repeat"] = _coerce_repeat(current["repeat"])
            current["text_edition"] = DEFAULT_TEXT_EDITION
            settings = UserSettings(**current)
            self._write(settings)
        return settings

    def audio_edition(self) -> str:
        """Return the currently selected audio edition (read fresh)."""
        return self.load().audio_edition


def _coerce_repeat(value: Any) -> int:
    try:
        return max(1, int(value))
    except (TypeError, ValueError):
        return 1
