"""
Install root and environment exports for later build steps.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Protocol

from cuda_setup.core.models.semver import SemVer
from cuda_setup.core.models.toolkit import PlatformProfile
from cuda_setup.core.services.provision.platform import strategy_for

logger = logging.getLogger(__name__)


class EnvironmentSink(Protocol):
    environ: Mapping[str, str]

    def export_variable(self, name: str, value: str) -> None: ...

    def add_path(self, path: str) -> None: ...


def update_path(version: SemVer, *, profile: PlatformProfile, sink: EnvironmentSink) -> str:
    """Export ``CUDA_PATH`` and friends for the installed toolkit.

    Returns:
        The CUDA installation root.
    """
    root = strategy_for(profile).install_root(version, sink.environ)
    logger.debug("CUDA path: %s", root)

    sink.export_variable("CUDA_PATH", root)
    if profile is PlatformProfile.WINDOWS:
        sink.export_variable(f"CUDA_PATH_V{version.major}_{version.minor}", root)
        sink.add_path(f"{root}\\bin")
    else:
        sink.add_path(f"{root}/bin")
        previous = sink.environ.get("LD_LIBRARY_PATH", "")
        lib = f"{root}/lib64"
        sink.export_variable(
            "LD_LIBRARY_PATH", f"{lib}:{previous}" if previous else lib
        )
    return root
