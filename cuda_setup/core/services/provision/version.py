"""
Version catalog resolver.

Turns the requested version strings into a ResolvedToolkit, checking
the CUDA version against the catalog for the active platform and
method.  The cuDNN version is parsed but never checked against any
catalog.
"""

from __future__ import annotations

import logging

from pydantic import AnyUrl, TypeAdapter, ValidationError

from cuda_setup.core.config.catalog import LinkCatalog
from cuda_setup.core.errors import InvalidURL, VersionUnavailable
from cuda_setup.core.models.semver import SemVer
from cuda_setup.core.models.toolkit import Method, PlatformProfile, ResolvedToolkit

logger = logging.getLogger(__name__)

# Platforms without an online-installer catalog are checked against
# their redistributable list when ``network`` is requested.
NETWORK_FALLS_BACK_TO_LOCAL = True

_URL_ADAPTER = TypeAdapter(AnyUrl)


def available_versions(
    catalog: LinkCatalog,
    profile: PlatformProfile,
    method: Method,
) -> list[SemVer]:
    """The versions that ``method`` can install on ``profile``."""
    if method is Method.LOCAL:
        return catalog.local_versions(profile)

    network = catalog.network_versions(profile)
    if network is None and NETWORK_FALLS_BACK_TO_LOCAL:
        logger.debug(
            "No network catalog for %s, checking the local catalog instead",
            profile.value,
        )
        return catalog.local_versions(profile)
    return network or []


def parse_url(value: str) -> AnyUrl:
    """Parse an absolute URL or raise ``InvalidURL``."""
    try:
        return _URL_ADAPTER.validate_python(value)
    except ValidationError:
        raise InvalidURL(value) from None


def resolve_toolkit(
    cuda_version: str,
    cudnn_version: str,
    cudnn_url: str,
    method: Method,
    *,
    profile: PlatformProfile,
    catalog: LinkCatalog,
) -> ResolvedToolkit:
    """Validate the requested versions and build a ResolvedToolkit.

    Args:
        cuda_version: Requested CUDA version, e.g. ``"11.2.2"``.
        cudnn_version: Requested cuDNN version, or ``""``.
        cudnn_url: cuDNN archive URL, or ``""``.
        method: Acquisition method selecting the catalog.
        profile: Host platform profile.
        catalog: Loaded link catalog.

    Returns:
        ResolvedToolkit with no CUDA URL yet; cuDNN fields are set only
        when both ``cudnn_version`` and ``cudnn_url`` are non-empty.

    Raises:
        InvalidVersionFormat: A version string is not strict semver.
        VersionUnavailable: The CUDA version is not in the catalog.
        InvalidURL: The cuDNN URL is malformed.
    """
    version = SemVer.parse(cuda_version)

    versions = available_versions(catalog, profile, method)
    logger.debug("Available CUDA versions: %s", ", ".join(str(v) for v in versions))

    if not any(v == version for v in versions):
        logger.debug("Version not available error!")
        raise VersionUnavailable(str(version))
    logger.debug("CUDA Version available: %s", version)

    if cudnn_version and cudnn_url:
        return ResolvedToolkit(
            cuda_version=version,
            cudnn_version=SemVer.parse(cudnn_version),
            cudnn_url=parse_url(cudnn_url),
        )
    return ResolvedToolkit(cuda_version=version)
