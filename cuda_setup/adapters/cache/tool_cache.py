"""
Machine-local tool cache — installers kept on the host between runs.

Layout follows the CI runner's tool cache::

    <root>/<tool id>/<version>/<arch>/<file>
    <root>/<tool id>/<version>/<arch>.complete

An entry only counts once its ``.complete`` marker exists.  The root is
``RUNNER_TOOL_CACHE`` when set, else a per-user cache directory.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Any

from cuda_setup.core.services.provision.platform import get_arch

logger = logging.getLogger(__name__)

_DEFAULT_CACHE_DIR = Path.home() / ".cache" / "cuda-setup" / "tool-cache"


def get_tool_cache_dir() -> Path:
    """Return (and create if needed) the machine-local cache root."""
    cache = Path(os.environ.get("RUNNER_TOOL_CACHE", str(_DEFAULT_CACHE_DIR)))
    cache.mkdir(parents=True, exist_ok=True)
    return cache


class ToolCache:
    """Versioned file cache scoped to one machine."""

    def __init__(self, root: Path | None = None, arch: str | None = None):
        self._root = root
        self.arch = arch or get_arch()

    @property
    def root(self) -> Path:
        if self._root is None:
            self._root = get_tool_cache_dir()
        return self._root

    def _entry(self, tool: str, version: str) -> Path:
        return self.root / tool / version / self.arch

    def find(self, tool: str, version: str) -> Path | None:
        """Return the entry directory for (tool, version), or None.

        An entry whose files were all consumed (e.g. an installer removed
        after running) is reported as a miss.
        """
        entry = self._entry(tool, version)
        marker = entry.parent / f"{self.arch}.complete"
        if not (marker.is_file() and entry.is_dir()):
            return None
        if not any(p.is_file() for p in entry.iterdir()):
            logger.debug("Tool cache entry %s is empty, ignoring", entry)
            return None
        return entry

    def cache_file(self, source: Path, target_name: str, tool: str, version: str) -> Path:
        """Copy ``source`` into the cache as ``target_name``.

        Returns:
            The entry directory now holding the file.
        """
        entry = self._entry(tool, version)
        marker = entry.parent / f"{self.arch}.complete"

        # Replace any stale or partial entry
        marker.unlink(missing_ok=True)
        if entry.exists():
            shutil.rmtree(entry)
        entry.mkdir(parents=True)

        shutil.copy2(source, entry / target_name)
        marker.write_text("", encoding="utf-8")
        logger.debug("Cached %s as %s/%s@%s", source, tool, target_name, version)
        return entry

    def status(self) -> dict[str, Any]:
        """Summary of cached tools and their sizes.

        Returns::

            {
                "cache_dir": "/opt/hostedtoolcache",
                "tools": {"cuda_installer-linux-6.5.0": {"versions": ["11.2.2"], "size_mb": 3100.2}},
                "total_size_mb": 3100.2,
            }
        """
        tools: dict[str, dict] = {}
        total_bytes = 0

        if self.root.exists():
            for item in sorted(self.root.iterdir()):
                if not item.is_dir():
                    continue
                files = [f for f in item.rglob("*") if f.is_file()]
                size = sum(f.stat().st_size for f in files)
                versions = sorted(v.name for v in item.iterdir() if v.is_dir())
                tools[item.name] = {
                    "versions": versions,
                    "size_mb": round(size / (1024 * 1024), 1),
                }
                total_bytes += size

        return {
            "cache_dir": str(self.root),
            "tools": tools,
            "total_size_mb": round(total_bytes / (1024 * 1024), 1),
        }

    def clear(self, tool: str | None = None) -> str:
        """Remove one tool's entries, or everything.

        Returns:
            The tool id cleared, or ``"all"``.
        """
        if tool:
            target = self.root / tool
            if target.exists():
                shutil.rmtree(target)
            return tool

        if self.root.exists():
            shutil.rmtree(self.root)
        self.root.mkdir(parents=True, exist_ok=True)
        return "all"
