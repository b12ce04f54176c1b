"""Connector for retrieving verse text and recitation audio from alquran.cloud.

This connector wraps the public alquran.cloud REST API.  A single
endpoint serves both concerns::

    GET {base_url}/ayah/{surah}:{ayah}/{edition}

For a text edition the response carries ``data.text``; for an audio
edition it carries ``data.audio`` (and sometimes a list of alternative
URLs in ``data.audioSecondary``).  If internet access is not available
the methods raise; callers decide how to degrade.

The connector does not retry by default.  Playback must move on quickly
when a verse has no audio, so retries are opt-in and only the batch
prefetch tool asks for them (``max_retries``), backing off on HTTP 429
and 5xx answers.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Dict, Optional

import requests

from .base import BaseAudioSource, BaseTextSource

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.alquran.cloud/v1"


class AlQuranCloudConnector(BaseTextSource, BaseAudioSource):
    """Fetch verse text and audio URLs using the alquran.cloud API.

    :param base_url: The base URL for the API.
    :param timeout: Per-request timeout in seconds.
    :param max_retries: How many times a 429/5xx answer is retried.
    :param base_delay_ms: First backoff delay; doubled on each retry.
    :param sleep: Injected for tests.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 30,
        max_retries: int = 0,
        base_delay_ms: int = 800,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(0, int(max_retries))
        self.base_delay_ms = base_delay_ms
        self._sleep = sleep
        self.session = requests.Session()

    # ------------------------------------------------------------------ #
    # Low-level request helper
    # ------------------------------------------------------------------ #
    def _retry_delay(self, resp: requests.Response, attempt: int) -> float:
        retry_after = resp.headers.get("Retry-After")
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass
        jitter = random.randint(0, 250)
        return (self.base_delay_ms * (2 ** attempt) + jitter) / 1000.0

    def _request(self, path: str) -> Dict[str, Any]:
        """Send a GET request to the API and return JSON.

        :raises ConnectionError: If the API returns a non-200 status
            (after any configured retries).
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        attempt = 0
        while True:
            resp = self.session.get(
                url,
                headers={"User-Agent": "Qisas/0.1"},
                timeout=self.timeout,
            )
            if resp.status_code == 200:
                return resp.json()
            status = resp.status_code
            if (status == 429 or status >= 500) and attempt < self.max_retries:
                delay = self._retry_delay(resp, attempt)
                logger.info(
                    "HTTP %s for %s, retrying in %.2fs (attempt %d/%d)",
                    status, url, delay, attempt + 1, self.max_retries,
                )
                self._sleep(delay)
                attempt += 1
                continue
            raise ConnectionError(f"alquran.cloud responded with status {status} for {url}")

    def _ayah(self, surah: int, ayah: int, edition: str) -> Dict[str, Any]:
        payload = self._request(f"ayah/{int(surah)}:{int(ayah)}/{edition}")
        data = payload.get("data")
        return data if isinstance(data, dict) else {}

    # ------------------------------------------------------------------ #
    # Text
    # ------------------------------------------------------------------ #
    def get_ayah_text(self, surah: int, ayah: int, edition: str) -> str:
        """Return the text of a verse, or ``""`` when the API has none."""
        return self._ayah(surah, ayah, edition).get("text") or ""

    # ------------------------------------------------------------------ #
    # Audio
    # ------------------------------------------------------------------ #
    def lookup_audio(self, surah: int, ayah: int, edition: str) -> Optional[str]:
        """Return the audio URL of a verse recited in *edition*.

        Prefers ``data.audio`` and falls back to the first entry of
        ``data.audioSecondary``.
        """
        data = self._ayah(surah, ayah, edition)
        url = data.get("audio")
        if url:
            return url
        secondary = data.get("audioSecondary") or []
        if secondary:
            return secondary[0] or None
        return None
