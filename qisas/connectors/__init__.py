"""Connector registry for Qisas.

Connectors are pluggable text and audio sources.  The factories below
read the application config and return ready-to-use instances.

Currently supported connectors:
    * :class:`AlQuranCloudConnector` – text and audio via the public
      alquran.cloud API (requires internet)
    * :class:`LocalTextConnector` – verse text from local JSON files
      (fully offline)

Configuration example (``config_default_settings.json``)::

    {
        "api": {"base_url": "https://api.alquran.cloud/v1", "timeout": 30},
        "text": {"edition": "quran-uthmani-quran-academy", "local_dir": null}
    }
"""

from __future__ import annotations

import logging
from typing import Optional

from .alquran import AlQuranCloudConnector, DEFAULT_BASE_URL
from .base import BaseAudioSource, BaseTextSource
from .local_text import LocalTextConnector
from ..config import AppConfig
from ..data.editions import DEFAULT_TEXT_EDITION

logger = logging.getLogger(__name__)

__all__ = [
    "BaseTextSource",
    "BaseAudioSource",
    "AlQuranCloudConnector",
    "LocalTextConnector",
    "get_default_connector",
    "get_local_connector",
]


def get_default_connector(
    config: Optional[AppConfig] = None,
    **overrides,
) -> AlQuranCloudConnector:
    """Return the remote connector configured by *config*.

    Recognised keys: ``api.base_url``, ``api.timeout``.  Keyword
    *overrides* are forwarded to the connector (the prefetch tool uses
    them to enable retries).
    """
    cfg = config or AppConfig()
    kwargs = {
        "base_url": cfg.get("api", "base_url", default=DEFAULT_BASE_URL),
        "timeout": cfg.get("api", "timeout", default=30),
    }
    kwargs.update(overrides)
    logger.info("Using AlQuranCloudConnector with base_url=%s", kwargs["base_url"])
    return AlQuranCloudConnector(**kwargs)


def get_local_connector(config: Optional[AppConfig] = None) -> LocalTextConnector:
    """Return the offline text connector configured by *config*.

    Recognised keys: ``text.local_dir``, ``text.edition``.
    """
    cfg = config or AppConfig()
    local_dir = cfg.get("text", "local_dir")
    edition = cfg.get("text", "edition", default=DEFAULT_TEXT_EDITION)
    connector = LocalTextConnector(text_dir=local_dir, edition=edition)
    logger.info("Using LocalTextConnector in %s", connector.text_dir)
    return connector
