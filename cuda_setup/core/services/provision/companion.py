"""
cuDNN merge — unpack the archive and move its files into the CUDA tree.

Each command fails fast.  A failure part-way through leaves the files
already moved where they are; nothing is rolled back.
"""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path

from pydantic import AnyUrl

from cuda_setup.core.models.toolkit import ArtifactKind, PlatformProfile
from cuda_setup.core.services.provision.installer import Runner, run_step
from cuda_setup.core.services.provision.platform import strategy_for

logger = logging.getLogger(__name__)


def derive_archive_dir(name: str, extension: str) -> str:
    """Top-level directory an archive unpacks into (pure).

    Strips ``extension`` and the one separator character before it::

        derive_archive_dir("cudnn-linux-x86_64-8.9.7.29_cuda12-archive.tar.xz", "tar.xz")
        -> "cudnn-linux-x86_64-8.9.7.29_cuda12-archive"

    A name that does not end with the extension is already a directory
    name and is returned unchanged.
    """
    if not name.endswith(extension) or len(name) <= len(extension) + 1:
        return name
    return name[: -(len(extension) + 1)]


def archive_directory_name(override: str, url: AnyUrl | None) -> str:
    """Directory-name source: the caller's override, else the URL's basename."""
    if override:
        return override
    path = url.path if url is not None and url.path else ""
    return posixpath.basename(path)


def install_companion(
    archive: str,
    directory_name: str,
    install_root: str,
    *,
    profile: PlatformProfile,
    runner: Runner,
) -> None:
    """Unpack the cuDNN archive into ``install_root`` and merge its files.

    Args:
        archive: Verified archive path.
        directory_name: Archive file name (or override) the inner
            directory name is derived from.
        install_root: CUDA installation root.
        profile: Host platform profile.
        runner: Executes the unpack and move commands.

    Raises:
        InstallFailed: Any unpack or move command failed.
    """
    strategy = strategy_for(profile)

    logger.debug("Unarchiving cudnn files: %s", archive)
    run_step(runner, strategy.build_extract_command(archive, install_root))

    Path(archive).unlink(missing_ok=True)

    inner = derive_archive_dir(directory_name, strategy.file_extension(ArtifactKind.COMPANION))
    for plan in strategy.build_merge_moves(install_root, inner):
        logger.debug("Moving cudnn files from %s", inner)
        run_step(runner, plan)
    logger.info("cuDNN merged into %s", install_root)
