"""
Tiered artifact acquisition.

Resolves the CUDA installer and the optional cuDNN archive to local
files, trying each tier in strict order:

    1. machine-local tool cache   (trusted as-is)
    2. shared remote cache        (only when enabled)
    3. origin download            (then written back to tiers 1 and 2)

Nothing here retries.  Download, copy, and cache-write failures
propagate unchanged.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from cuda_setup.core.config.catalog import LinkCatalog
from cuda_setup.core.errors import CacheAlreadyExists, EmptyDownloadURL
from cuda_setup.core.models.toolkit import (
    AcquisitionResult,
    ArtifactKind,
    Method,
    PlatformProfile,
    ResolvedToolkit,
)
from cuda_setup.core.services.provision.platform import strategy_for
from cuda_setup.core.services.provision.verification import EXECUTABLE_MODE, verify_cache_path

logger = logging.getLogger(__name__)

TOOL_NAMES: dict[ArtifactKind, str] = {
    ArtifactKind.PRIMARY: "cuda_installer",
    ArtifactKind.COMPANION: "cudnn_archive",
}


class MachineCache(Protocol):
    def find(self, tool: str, version: str) -> Path | None: ...

    def cache_file(self, source: Path, target_name: str, tool: str, version: str) -> Path: ...


class RemoteCache(Protocol):
    def restore(self, path: Path, key: str) -> str | None: ...

    def save(self, path: Path, key: str) -> None: ...


class Downloader(Protocol):
    def download(self, url: str, dest: Path) -> Path: ...


# ── Keys (pure) ─────────────────────────────────────────────────


def tool_id(kind: ArtifactKind, profile: PlatformProfile, release: str) -> str:
    """``cuda_installer-linux-6.5.0-1025-azure`` and friends."""
    return f"{TOOL_NAMES[kind]}-{profile.value}-{release}"


def cache_key(kind: ArtifactKind, profile: PlatformProfile, release: str, version: str) -> str:
    """Deterministic key shared by the machine and remote cache entries."""
    return f"{tool_id(kind, profile, release)}-{version}"


# ── URL resolution ──────────────────────────────────────────────


def resolve_download_url(
    method: Method,
    toolkit: ResolvedToolkit,
    profile: PlatformProfile,
    catalog: LinkCatalog,
) -> ResolvedToolkit:
    """Fill in ``toolkit.cuda_url`` from the catalog.

    Raises:
        NetworkModeUnsupported: ``network`` requested on a platform
            without online installers.
    """
    if method is Method.LOCAL:
        toolkit.cuda_url = catalog.local_url(profile, toolkit.cuda_version)
    else:
        toolkit.cuda_url = catalog.network_url(profile, toolkit.cuda_version)
    return toolkit


# ── Acquisition ─────────────────────────────────────────────────


class ArtifactAcquirer:
    """Walks the cache tiers for one run.

    Args:
        profile: Host platform profile.
        release: Host release identifier (part of every key).
        tool_cache: Machine-local cache.
        downloader: Origin downloader.
        catalog_loader: Loads the link catalog; only called when an
            origin download needs a URL.
        work_dir: Directory for downloads and remote-cache restores.
        remote_cache: Shared cache, or None if unavailable.
    """

    def __init__(
        self,
        *,
        profile: PlatformProfile,
        release: str,
        tool_cache: MachineCache,
        downloader: Downloader,
        catalog_loader: Callable[[], LinkCatalog],
        work_dir: Path,
        remote_cache: RemoteCache | None = None,
    ):
        self.profile = profile
        self.release = release
        self.tool_cache = tool_cache
        self.downloader = downloader
        self.catalog_loader = catalog_loader
        self.work_dir = work_dir
        self.remote_cache = remote_cache

    def acquire(
        self,
        kind: ArtifactKind,
        toolkit: ResolvedToolkit,
        method: Method,
        use_remote_cache: bool,
    ) -> AcquisitionResult:
        """Resolve one artifact to a local directory holding it."""
        version = str(toolkit.version_for(kind))
        tid = tool_id(kind, self.profile, self.release)

        cached = self.tool_cache.find(tid, version)
        if cached is not None:
            logger.debug("Found %s in local machine cache %s", kind.value, cached)
            return AcquisitionResult(kind=kind, path=str(cached), tier="machine_cache")

        key = cache_key(kind, self.profile, self.release, version)
        cache_path = self.work_dir / key
        use_remote = use_remote_cache and self.remote_cache is not None

        if use_remote:
            logger.debug("Try to restore %s [key=%s] from remote cache", kind.value, key)
            if self.remote_cache.restore(cache_path, key) is not None:
                logger.debug("Found in remote cache %s", cache_path)
                return AcquisitionResult(kind=kind, path=str(cache_path), tier="remote_cache")

        logger.debug("Not found in local/remote cache, downloading...")
        local_path = self._download(kind, toolkit, method, tid, version, cache_path)

        if use_remote:
            try:
                self.remote_cache.save(cache_path, key)
                logger.debug("Cached %s download to remote cache [key=%s]", kind.value, key)
            except CacheAlreadyExists:
                logger.debug("Did not cache, cache possibly already exists")

        return AcquisitionResult(kind=kind, path=str(local_path), tier="origin")

    def _download(
        self,
        kind: ArtifactKind,
        toolkit: ResolvedToolkit,
        method: Method,
        tid: str,
        version: str,
        cache_path: Path,
    ) -> Path:
        if kind is ArtifactKind.PRIMARY:
            resolve_download_url(method, toolkit, self.profile, self.catalog_loader())

        url = toolkit.url_for(kind)
        if not url:
            raise EmptyDownloadURL(kind.value)

        extension = strategy_for(self.profile).file_extension(kind)
        dest_name = f"{tid}_{version}.{extension}"
        download_path = self.downloader.download(url, self.work_dir / dest_name)
        logger.debug(
            "Package URL for %s=%s, destFileName=%s, downloadPath=%s",
            kind.value, url, dest_name, download_path,
        )

        logger.debug("Copying %s to %s", dest_name, cache_path)
        cache_path.mkdir(parents=True, exist_ok=True)
        shutil.copy2(download_path, cache_path / dest_name)

        local_path = self.tool_cache.cache_file(download_path, dest_name, tid, version)
        logger.debug("Cached download to local machine cache at %s", local_path)
        download_path.unlink(missing_ok=True)
        return local_path


def download(
    toolkit: ResolvedToolkit,
    method: Method,
    use_remote_cache: bool,
    acquirer: ArtifactAcquirer,
) -> tuple[str, str | None]:
    """Acquire and verify both artifacts.

    Returns:
        ``(installer_path, archive_path)``; the archive path is None
        when no cuDNN was requested.  The installer is made executable
        on Linux.
    """
    primary = acquirer.acquire(ArtifactKind.PRIMARY, toolkit, method, use_remote_cache)
    logger.info("CUDA installer acquired from %s", primary.tier)

    companion: AcquisitionResult | None = None
    if toolkit.has_companion:
        companion = acquirer.acquire(ArtifactKind.COMPANION, toolkit, method, use_remote_cache)
        logger.info("cuDNN archive acquired from %s", companion.tier)

    executable = verify_cache_path(primary.path, acquirer.profile, EXECUTABLE_MODE)
    archive = verify_cache_path(companion.path, acquirer.profile) if companion else None
    return executable, archive
