"""
Shared remote cache — cross-run cache keyed by a deterministic string.

Entries are tarballs of one directory, stored as ``<root>/<key>.tar``
under a directory shared between runners (``CUDA_SETUP_REMOTE_CACHE_DIR``,
typically a network mount).  Entries are immutable: saving a key that
already exists raises ``CacheAlreadyExists``.
"""

from __future__ import annotations

import logging
import os
import tarfile
import tempfile
from pathlib import Path

from cuda_setup.core.errors import CacheAlreadyExists

logger = logging.getLogger(__name__)

REMOTE_CACHE_ENV = "CUDA_SETUP_REMOTE_CACHE_DIR"


class DirectoryRemoteCache:
    """Remote cache stored as tarballs in a shared directory."""

    def __init__(self, root: Path):
        self.root = root

    def _archive(self, key: str) -> Path:
        return self.root / f"{key}.tar"

    def restore(self, path: Path, key: str) -> str | None:
        """Restore the entry for ``key`` into ``path``.

        Returns:
            The key on a hit, None on a miss.
        """
        archive = self._archive(key)
        if not archive.is_file():
            logger.debug("Remote cache miss for %s", key)
            return None

        path.mkdir(parents=True, exist_ok=True)
        with tarfile.open(archive, "r") as tar:
            tar.extractall(path, filter="data")
        logger.debug("Restored %s from remote cache into %s", key, path)
        return key

    def save(self, path: Path, key: str) -> None:
        """Store the contents of ``path`` under ``key``.

        Writes to a temp file first, then renames, so a concurrent reader
        never sees a partial entry.

        Raises:
            CacheAlreadyExists: If ``key`` is already stored.
        """
        archive = self._archive(key)
        if archive.exists():
            raise CacheAlreadyExists(key)

        self.root.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".cache_", suffix=".tmp")
        os.close(fd)
        tmp = Path(tmp_name)
        try:
            with tarfile.open(tmp, "w") as tar:
                for item in sorted(path.iterdir()):
                    tar.add(item, arcname=item.name)
            if archive.exists():
                raise CacheAlreadyExists(key)
            tmp.rename(archive)
        finally:
            tmp.unlink(missing_ok=True)
        logger.debug("Saved %s to remote cache", key)


def remote_cache_from_env() -> DirectoryRemoteCache | None:
    """The configured remote cache, or None if none is configured."""
    root = os.environ.get(REMOTE_CACHE_ENV)
    if not root:
        return None
    return DirectoryRemoteCache(Path(root))
