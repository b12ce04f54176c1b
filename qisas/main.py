"""Qisas application entry point.

This script can be invoked directly (``python -m qisas.main``) or via
the package's ``__main__`` module.  It initialises logging and the Qt
application, creates the main window and starts the event loop.

A story and position can be opened directly, mirroring the shareable
links shown in the window::

    python -m qisas --story yusuf --link "surah=12&from=4&to=6"
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from PyQt6.QtWidgets import QApplication

from .audio.audio_logger import configure_audio_logger
from .config import get_app_config, load_config
from .utils.links import parse_link_params


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qisas", description="Quran stories player")
    parser.add_argument("--story", help="Story id to open at start-up")
    parser.add_argument(
        "--link",
        help="Deep-link parameters, e.g. 'surah=12&from=4&to=6' or '#surah=12&from=4&to=6'",
    )
    parser.add_argument("--config", help="Path to a JSON config file overriding the defaults")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    config = load_config(args.config) if args.config else get_app_config()
    configure_audio_logger(config.get("audio", "log_file"))

    link = args.link or ""
    query, _, fragment = link.partition("#")
    params = parse_link_params(query, fragment)
    story_id = args.story or params.get("storyId")

    # Imported late so --help works without a display.
    from .gui.story_window import StoryWindow

    app = QApplication(sys.argv[:1])
    window = StoryWindow(config=config, story_id=story_id, link_params=params)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
