"""
Package-manager install path — CUDA from NVIDIA's apt repository.

Taken instead of the runfile pipeline for ``network`` installs on
Linux.  Two calls: ``apt_setup`` configures the repository for a
version, ``apt_install`` installs the package set.
"""

from __future__ import annotations

import logging
from pathlib import Path

from cuda_setup.core.errors import SetupError
from cuda_setup.core.models.semver import SemVer
from cuda_setup.core.models.toolkit import CommandPlan, Method, PlatformProfile
from cuda_setup.core.services.provision.acquisition import Downloader
from cuda_setup.core.services.provision.installer import Runner, run_step

logger = logging.getLogger(__name__)

APT_REPO_BASE = "https://developer.download.nvidia.com/compute/cuda/repos"
KEYRING_PACKAGE = "cuda-keyring_1.1-1_all.deb"
APT_ARCH = "x86_64"


def use_apt(method: Method, profile: PlatformProfile) -> bool:
    """Whether this platform/method combination installs through apt."""
    return method is Method.NETWORK and profile is PlatformProfile.LINUX


def distro_id(os_release: Path = Path("/etc/os-release")) -> str:
    """NVIDIA repository name for the host distribution, e.g. ``ubuntu2204``.

    Raises:
        SetupError: If ``os_release`` cannot be read or lacks ID fields.
    """
    fields: dict[str, str] = {}
    try:
        with open(os_release, encoding="utf-8") as f:
            for line in f:
                if "=" in line:
                    key, value = line.strip().split("=", 1)
                    fields[key] = value.strip('"')
    except OSError as e:
        raise SetupError(f"Cannot detect Linux distribution: {e}") from e

    if "ID" not in fields or "VERSION_ID" not in fields:
        raise SetupError(f"Cannot detect Linux distribution from {os_release}")
    return f"{fields['ID']}{fields['VERSION_ID'].replace('.', '')}"


def apt_repo_url(distro: str) -> str:
    return f"{APT_REPO_BASE}/{distro}/{APT_ARCH}/"


def apt_setup(
    version: SemVer,
    *,
    runner: Runner,
    downloader: Downloader,
    work_dir: Path,
    distro: str | None = None,
) -> None:
    """Register NVIDIA's apt repository and refresh the package index."""
    distro = distro or distro_id()
    keyring_url = apt_repo_url(distro) + KEYRING_PACKAGE
    logger.debug("Setting up apt repository for CUDA %s (%s)", version, distro)

    keyring = downloader.download(keyring_url, work_dir / KEYRING_PACKAGE)
    run_step(runner, CommandPlan(
        command="dpkg", args=["-i", str(keyring)], sudo=True, label="apt repository setup",
    ))
    run_step(runner, CommandPlan(
        command="apt-get", args=["update"], sudo=True, label="apt update",
    ))
    keyring.unlink(missing_ok=True)


def apt_packages(version: SemVer, sub_packages: list[str]) -> list[str]:
    """Package names for ``version``: the meta-package or each sub-package."""
    suffix = f"{version.major}-{version.minor}"
    if not sub_packages:
        return [f"cuda-{suffix}"]
    return [f"cuda-{package}-{suffix}" for package in sub_packages]


def apt_install(version: SemVer, sub_packages: list[str], *, runner: Runner) -> None:
    """Install the CUDA package set for ``version``."""
    packages = apt_packages(version, sub_packages)
    logger.info("Installing %s with apt", " ".join(packages))
    run_step(runner, CommandPlan(
        command="apt-get",
        args=["-y", "install", *packages],
        sudo=True,
        label="apt install",
    ))
