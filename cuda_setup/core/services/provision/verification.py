"""
Cache path verification — one directory, exactly one artifact.

Runs once per acquired artifact, before anything executes or extracts it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from cuda_setup.core.errors import EmptyCache, MultipleFilesInCache
from cuda_setup.core.models.toolkit import PlatformProfile

logger = logging.getLogger(__name__)

# owner rwx, group r-x, other r-x
EXECUTABLE_MODE = 0o755


def verify_cache_path(
    path: str | Path,
    profile: PlatformProfile,
    mode: int | None = None,
) -> str:
    """Return the single file directly under ``path``.

    Args:
        path: Directory holding the acquired artifact.
        profile: Host platform profile.
        mode: Permission bits applied on Linux (installers only).

    Returns:
        Absolute path of the artifact file.

    Raises:
        MultipleFilesInCache: More than one file under ``path``.
        EmptyCache: No file under ``path``.
    """
    directory = Path(path)
    files = sorted(p for p in directory.iterdir() if p.is_file()) if directory.is_dir() else []

    logger.debug("Files in tool cache:")
    for f in files:
        logger.debug(f)

    if len(files) > 1:
        raise MultipleFilesInCache(len(files))
    if not files:
        raise EmptyCache()

    artifact = str(files[0].resolve())
    if profile is PlatformProfile.LINUX and mode is not None:
        os.chmod(artifact, mode)
    return artifact
