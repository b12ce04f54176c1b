"""Audio debug logger configuration.

This module configures a **single** file-backed logger for the playback
subsystem (queue sequencing, URL lookups, Qt output errors).

Goals
-----
- Write to ``audio_debug.log`` (or the ``audio.log_file`` config value).
- Be idempotent (safe to call multiple times).
- Work even if other parts of the app already configured logging.
- Emit a visible *startup* entry so users can confirm the log is active.

Every module under ``qisas.audio`` logs through
``logging.getLogger(__name__)``; those loggers are children of
``qisas.audio`` and therefore end up in this file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from threading import Lock
from typing import Optional, Union

_LOCK = Lock()
_CONFIGURED = False

AUDIO_LOGGER_NAME = "qisas.audio"


def get_audio_log_path(log_file: Union[str, os.PathLike, None] = None) -> Path:
    """Return the absolute path of the audio debug log.

    Relative paths are resolved against the current working directory.
    """
    return Path(log_file or "audio_debug.log").resolve()


def configure_audio_logger(
    log_file: Union[str, os.PathLike, None] = None,
    force: bool = False,
) -> logging.Logger:
    """Configure the audio debug logger and return it.

    Parameters
    ----------
    log_file:
        Target file; defaults to ``audio_debug.log`` in the working
        directory.
    force:
        If True, forces adding a fresh FileHandler and writing a startup
        line even if the logger seems configured already.

    Returns
    -------
    logging.Logger
        The configured logger named ``qisas.audio``.
    """
    global _CONFIGURED

    with _LOCK:
        logger = logging.getLogger(AUDIO_LOGGER_NAME)
        logger.setLevel(logging.DEBUG)

        # Deterministic file logging, independent of the root logger setup.
        logger.propagate = False

        log_path = str(get_audio_log_path(log_file))

        has_matching_file_handler = False
        for h in logger.handlers:
            if isinstance(h, logging.FileHandler):
                if os.path.abspath(getattr(h, "baseFilename", "")) == log_path:
                    has_matching_file_handler = True
                    break

        if force or not has_matching_file_handler:
            fh: Optional[logging.FileHandler]
            try:
                fh = logging.FileHandler(log_path, mode="a", encoding="utf-8")
            except OSError:
                fh = None
                logging.getLogger(__name__).warning(
                    "Cannot open audio log %s, logging to stderr", log_path
                )
            if fh is not None:
                fh.setLevel(logging.DEBUG)
                fh.setFormatter(
                    logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
                )
                logger.addHandler(fh)
            elif not logger.handlers:
                logger.addHandler(logging.StreamHandler())

        # Startup entry: write exactly once per process (unless forced).
        if force or not _CONFIGURED:
            logger.info("=== Audio debug logging started (pid=%s) ===", os.getpid())
            for h in logger.handlers:
                h.flush()
            _CONFIGURED = True

        return logger
