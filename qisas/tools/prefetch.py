"""Download the verses referenced by the stories CSV for offline use.

Only the verse ranges listed in the CSV are fetched, in the default text
edition, and merged into ``<surah>.json`` files in the local text
directory.  Verses already present are not downloaded again, so the
tool can be re-run after a partial failure::

    python -m qisas.tools.prefetch --csv database.csv --out qisas/data/text

Rate-limit (429) and server (5xx) responses are retried with backoff by
the connector; any verse that still fails is logged and reported as
missing at the end.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from ..config import AppConfig, get_app_config, load_config
from ..connectors import get_default_connector
from ..connectors.base import BaseTextSource
from ..core.stories import carry_forward, parse_csv
from ..data.editions import DEFAULT_TEXT_EDITION
from ..utils.paths import find_data_dir, find_data_file

logger = logging.getLogger(__name__)


def _int(value: Optional[str]) -> int:
    try:
        return int(float(value)) if value else 0
    except ValueError:
        return 0


def collect_ranges(rows: Iterable[Dict[str, str]]) -> Dict[int, Set[int]]:
    """Return the verse numbers needed per surah.

    Rows missing a surah or either bound are ignored.
    """
    needed: Dict[int, Set[int]] = {}
    for row in carry_forward(rows):
        surah = _int(row.get("surah_number"))
        first = _int(row.get("aya_from"))
        last = _int(row.get("aya_to"))
        if not (surah and first and last):
            continue
        needed.setdefault(surah, set()).update(range(first, last + 1))
    return needed


def read_existing(path: Path) -> Optional[Dict[str, Any]]:
    """Return a previously written surah file, or ``None`` if absent or unreadable."""
    if not path.is_file():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable %s: %s", path, exc)
        return None
    return data if isinstance(data, dict) else None


def fetch_missing(
    source: BaseTextSource,
    surah: int,
    needed: Iterable[int],
    existing: Optional[Dict[str, Any]] = None,
    edition: str = DEFAULT_TEXT_EDITION,
    concurrency: int = 3,
) -> Dict[str, Any]:
    """Fetch the verses of *needed* that *existing* lacks.

    :return: The merged surah document ``{"edition", "surah", "ayahs"}``.
    """
    ayahs: Dict[str, str] = dict((existing or {}).get("ayahs") or {})
    missing = sorted(n for n in set(needed) if ayahs.get(str(n)) is None)
    if not missing:
        return {"edition": edition, "surah": surah, "ayahs": ayahs}

    def fetch(n: int) -> None:
        try:
            ayahs[str(n)] = source.get_ayah_text(surah, n, edition)
        except Exception as exc:
            logger.warning("surah %d ayah %d failed: %s", surah, n, exc)
        else:
            logger.info("surah %d ayah %d done", surah, n)

    with ThreadPoolExecutor(max_workers=max(1, min(concurrency, len(missing)))) as pool:
        list(pool.map(fetch, missing))
    return {"edition": edition, "surah": surah, "ayahs": ayahs}


def prefetch(
    csv_path: Path,
    out_dir: Path,
    source: BaseTextSource,
    concurrency: int = 3,
) -> Dict[int, int]:
    """Prefetch every surah referenced by *csv_path* into *out_dir*.

    :return: Number of verses still missing per surah (zero when complete).
    """
    with open(csv_path, "r", encoding="utf-8") as f:
        needed_by_surah = collect_ranges(parse_csv(f.read()))
    out_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Surahs found in CSV: %s", ", ".join(str(s) for s in needed_by_surah))

    remaining: Dict[int, int] = {}
    for surah, needed in needed_by_surah.items():
        out_path = out_dir / f"{surah}.json"
        logger.info("Fetching needed ayahs for surah %d (count=%d)", surah, len(needed))
        data = fetch_missing(
            source, surah, needed, read_existing(out_path), concurrency=concurrency
        )
        with open(out_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        logger.info("Saved %s", out_path)
        have = set(data["ayahs"])
        remaining[surah] = sum(1 for n in needed if str(n) not in have)
        if remaining[surah]:
            logger.warning("Remaining missing for surah %d: %d", surah, remaining[surah])
    return remaining


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="qisas-prefetch",
        description="Download the verses referenced by the stories CSV",
    )
    parser.add_argument("--csv", help="Stories CSV (default: data.stories_csv)")
    parser.add_argument("--out", help="Output directory (default: text.local_dir)")
    parser.add_argument("--config", help="Path to a JSON config override")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    config: AppConfig = load_config(args.config) if args.config else get_app_config()

    try:
        csv_path = find_data_file(args.csv or config.get("data", "stories_csv", default="database.csv"))
    except FileNotFoundError as exc:
        logger.error("CSV not found: %s", exc)
        return 1
    out_dir = Path(args.out) if args.out else find_data_dir(config.get("text", "local_dir") or "text")

    source = get_default_connector(
        config,
        max_retries=config.get("prefetch", "max_retries", default=6),
        base_delay_ms=config.get("prefetch", "base_delay_ms", default=800),
    )
    remaining = prefetch(
        csv_path,
        out_dir,
        source,
        concurrency=int(config.get("prefetch", "concurrency", default=3)),
    )
    logger.info("Done. Local files are under %s", out_dir)
    return 1 if any(remaining.values()) else 0


if __name__ == "__main__":
    sys.exit(main())
