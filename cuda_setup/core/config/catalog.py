"""
Link catalog loader — reads links.yml into a validated LinkCatalog.

The catalog maps every known CUDA version to its installer URL, per
platform and acquisition method.  The packaged ``core/data/links.yml``
is used unless ``CUDA_SETUP_LINKS_FILE`` points at another file.

The version resolver and the origin-download step both need it; it
is loaded on first use and then kept for the rest of the process.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from cuda_setup.core.errors import CatalogError, InvalidVersionFormat, NetworkModeUnsupported
from cuda_setup.core.models.semver import SemVer
from cuda_setup.core.models.toolkit import PlatformProfile

logger = logging.getLogger(__name__)

DEFAULT_LINKS_FILE = Path(__file__).resolve().parent.parent / "data" / "links.yml"
LINKS_FILE_ENV = "CUDA_SETUP_LINKS_FILE"

_cached: dict[Path, LinkCatalog] = {}


def _validate_versions(links: dict[str, str]) -> dict[str, str]:
    for version in links:
        try:
            SemVer.parse(version)
        except InvalidVersionFormat as e:
            raise ValueError(str(e)) from e
    return links


class PlatformLinks(BaseModel):
    """Installer URLs for one platform.

    ``network`` is None on platforms without online installers.
    """

    local: dict[str, str] = Field(default_factory=dict)
    network: dict[str, str] | None = None

    @field_validator("local")
    @classmethod
    def _local_versions(cls, v: dict[str, str]) -> dict[str, str]:
        return _validate_versions(v)

    @field_validator("network")
    @classmethod
    def _network_versions(cls, v: dict[str, str] | None) -> dict[str, str] | None:
        return _validate_versions(v) if v is not None else None

    @property
    def supports_network(self) -> bool:
        return self.network is not None


class LinkCatalog(BaseModel):
    """All known installer URLs, keyed by platform."""

    linux: PlatformLinks = Field(default_factory=PlatformLinks)
    windows: PlatformLinks = Field(default_factory=PlatformLinks)

    def for_platform(self, profile: PlatformProfile) -> PlatformLinks:
        return self.windows if profile is PlatformProfile.WINDOWS else self.linux

    def local_versions(self, profile: PlatformProfile) -> list[SemVer]:
        """Versions with a redistributable installer on ``profile``."""
        return [SemVer.parse(v) for v in self.for_platform(profile).local]

    def network_versions(self, profile: PlatformProfile) -> list[SemVer] | None:
        """Versions with an online installer, or None if ``profile`` has none."""
        links = self.for_platform(profile)
        if not links.supports_network:
            return None
        return [SemVer.parse(v) for v in links.network]

    def local_url(self, profile: PlatformProfile, version: SemVer) -> str | None:
        """Redistributable installer URL for ``version``, if known."""
        return _lookup(self.for_platform(profile).local, version)

    def network_url(self, profile: PlatformProfile, version: SemVer) -> str | None:
        """Online installer URL for ``version``, if known.

        Raises:
            NetworkModeUnsupported: If ``profile`` has no online installers.
        """
        links = self.for_platform(profile)
        if not links.supports_network:
            raise NetworkModeUnsupported(
                f"Network mode is not supported by {profile.value}, shouldn't even get here"
            )
        return _lookup(links.network, version)


def _lookup(links: dict[str, str], version: SemVer) -> str | None:
    for key, url in links.items():
        if SemVer.parse(key) == version:
            return url
    return None


def catalog_path() -> Path:
    """Path of the catalog file in effect (env override or packaged default)."""
    override = os.environ.get(LINKS_FILE_ENV)
    return Path(override) if override else DEFAULT_LINKS_FILE


def load_catalog(path: Path | None = None) -> LinkCatalog:
    """Load and validate the link catalog.

    Args:
        path: Explicit catalog file.  If None, uses ``catalog_path()``.

    Returns:
        Validated LinkCatalog (cached per path).

    Raises:
        CatalogError: If the file is missing, not YAML, or fails validation.
    """
    path = (path or catalog_path()).resolve()
    if path in _cached:
        return _cached[path]

    logger.debug("Loading link catalog from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogError(f"Cannot read link catalog {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise CatalogError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise CatalogError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        catalog = LinkCatalog.model_validate(data)
    except ValidationError as e:
        raise CatalogError(f"Invalid link catalog {path}: {e}") from e

    logger.debug(
        "Loaded link catalog: linux=%d, windows=%d local versions",
        len(catalog.linux.local),
        len(catalog.windows.local),
    )
    _cached[path] = catalog
    return catalog


def clear_catalog_cache() -> None:
    """Drop loaded catalogs (tests only)."""
    _cached.clear()
