"""
Origin downloader — fetches installers and archives over HTTP(S).

No timeout and no retries: the CI job enforces wall-clock limits, and
network errors propagate to the caller unchanged.
"""

from __future__ import annotations

import logging
import shutil
import urllib.request
from pathlib import Path

from cuda_setup import __version__

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


class HttpDownloader:
    """Streams a URL to a local file."""

    user_agent = f"cuda-toolkit-setup/{__version__}"

    def download(self, url: str, dest: Path) -> Path:
        """Download ``url`` to ``dest``.

        A partially written ``dest`` is removed if the transfer fails.

        Returns:
            ``dest``.

        Raises:
            urllib.error.URLError: On HTTP or connection failures.
            OSError: On filesystem failures.
        """
        dest.parent.mkdir(parents=True, exist_ok=True)
        req = urllib.request.Request(url, headers={"User-Agent": self.user_agent})
        logger.info("Downloading %s", url)
        try:
            with urllib.request.urlopen(req) as resp, open(dest, "wb") as f:
                shutil.copyfileobj(resp, f, _CHUNK_SIZE)
        except BaseException:
            dest.unlink(missing_ok=True)
            raise
        logger.debug("Downloaded %s (%d bytes)", dest, dest.stat().st_size)
        return dest
