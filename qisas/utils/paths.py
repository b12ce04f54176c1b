"""Utility functions for locating data files.

Rather than hard-coding relative paths, :func:`find_data_file` searches a
few standard locations: the current working directory of the process,
the repository root, the package directory and the package's ``data``
directory.  This makes it robust to various launch contexts (e.g.
running via ``python -m qisas.main`` from a checkout or from an
installed wheel).
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable


def _candidate_locations(filename: str) -> Iterable[Path]:
    """Yield candidate locations for a data file.

    The order of locations is:
    1. Current working directory.
    2. Repository root (two levels above this file).
    3. Package directory (one level above this file).
    4. Package ``data`` directory.
    """
    here = Path(__file__).resolve()
    cwd = Path.cwd()
    repo_root = here.parents[2]
    pkg_root = here.parents[1]
    yield cwd / filename
    yield repo_root / filename
    yield pkg_root / filename
    yield pkg_root / "data" / filename


def find_data_file(filename: str) -> Path:
    """Locate a data file by searching standard locations.

    Absolute paths are returned unchanged when they exist.  Raises
    FileNotFoundError if the file is not found.
    """
    if Path(filename).is_absolute():
        if Path(filename).is_file():
            return Path(filename)
        raise FileNotFoundError(f"Could not find data file '{filename}'")
    for candidate in _candidate_locations(filename):
        if candidate.is_file():
            return candidate
    raise FileNotFoundError(f"Could not find data file '{filename}'. Tried: "
                            f"{', '.join(str(p) for p in _candidate_locations(filename))}")


def find_data_dir(dirname: str) -> Path:
    """Like :func:`find_data_file` but for directories.

    Falls back to the package ``data`` location even when it does not
    exist yet, so callers can create it.
    """
    if Path(dirname).is_absolute():
        return Path(dirname)
    candidates = list(_candidate_locations(dirname))
    for candidate in candidates:
        if candidate.is_dir():
            return candidate
    return candidates[-1]
