"""
Platform profile detection and per-platform command strategies.

The host profile is resolved ONCE per process and then passed
explicitly to every service.  Everything that differs between
Linux and Windows (file extensions, installer arguments, archive
tools, merge moves, install root) lives in one strategy class per
platform, selected by ``strategy_for(profile)``.
"""

from __future__ import annotations

import logging
import os
import platform as _platform
import sys
from abc import ABC, abstractmethod
from collections.abc import Mapping

from cuda_setup.core.errors import UnsupportedPlatform
from cuda_setup.core.models.semver import SemVer
from cuda_setup.core.models.toolkit import ArtifactKind, CommandPlan, PlatformProfile

logger = logging.getLogger(__name__)

# Windows sub-package whose name does not carry the CUDA version
DISPLAY_DRIVER_PACKAGE = "Display.Driver"

# Installer log written by the Linux runfile installer
LINUX_INSTALL_LOG = "/var/log/cuda-installer.log"

_profile: PlatformProfile | None = None


# ── Host detection ──────────────────────────────────────────────


def detect_platform(system: str | None = None) -> PlatformProfile:
    """Map a ``sys.platform`` value to a profile.

    Raises:
        UnsupportedPlatform: For anything other than Linux or Windows.
    """
    name = system if system is not None else sys.platform
    if name == "win32":
        return PlatformProfile.WINDOWS
    if name.startswith("linux"):
        return PlatformProfile.LINUX
    logger.debug("Unsupported OS: %s", name)
    raise UnsupportedPlatform(name)


def get_platform() -> PlatformProfile:
    """Return the host profile, detecting it on first call only."""
    global _profile
    if _profile is None:
        _profile = detect_platform()
        logger.debug("Detected platform profile: %s", _profile.value)
    return _profile


def reset_platform_cache() -> None:
    """Forget the cached profile (tests only)."""
    global _profile
    _profile = None


def get_release() -> str:
    """Host OS release identifier, part of every cache key."""
    return _platform.release()


def get_arch() -> str:
    """Machine architecture as used in the tool-cache layout."""
    machine = _platform.machine().lower()
    return {"x86_64": "x64", "amd64": "x64", "aarch64": "arm64"}.get(machine, machine)


# ── Strategies ──────────────────────────────────────────────────


class PlatformStrategy(ABC):
    """Everything the provisioning services need to know about one platform."""

    profile: PlatformProfile

    @abstractmethod
    def file_extension(self, kind: ArtifactKind) -> str:
        """Download file extension for ``kind`` (without the dot)."""

    @abstractmethod
    def build_install_command(
        self,
        executable: str,
        version: SemVer,
        sub_packages: list[str],
        linux_local_args: list[str],
    ) -> CommandPlan:
        """Silent-install command for the primary installer."""

    @abstractmethod
    def build_extract_command(self, archive: str, install_root: str) -> CommandPlan:
        """Command unpacking the companion archive into ``install_root``."""

    @abstractmethod
    def build_merge_moves(self, install_root: str, archive_dir: str) -> list[CommandPlan]:
        """Ordered commands moving companion files into the toolkit tree."""

    @abstractmethod
    def install_root(self, version: SemVer, environ: Mapping[str, str]) -> str:
        """Directory the toolkit ends up in after installation."""

    @property
    def uploads_install_log(self) -> bool:
        """Whether the installer leaves a log worth uploading."""
        return False

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} profile={self.profile.value!r}>"


class LinuxStrategy(PlatformStrategy):
    profile = PlatformProfile.LINUX

    def file_extension(self, kind: ArtifactKind) -> str:
        return "run" if kind is ArtifactKind.PRIMARY else "tar.xz"

    def build_install_command(
        self,
        executable: str,
        version: SemVer,
        sub_packages: list[str],
        linux_local_args: list[str],
    ) -> CommandPlan:
        # Root permission needed; extra args are passed through untouched
        return CommandPlan(
            command=executable,
            args=["--silent", *linux_local_args],
            sudo=True,
            label="CUDA installation",
        )

    def build_extract_command(self, archive: str, install_root: str) -> CommandPlan:
        return CommandPlan(
            command="tar",
            args=["-xf", archive, "-C", install_root],
            sudo=True,
            label="cuDNN extraction",
        )

    def build_merge_moves(self, install_root: str, archive_dir: str) -> list[CommandPlan]:
        src = f"{install_root}/{archive_dir}"
        # Globs stay outside the quotes so bash expands them
        script = (
            f'mv "{src}/lib/"* "{install_root}/lib/" && '
            f'mv "{src}/include/"* "{install_root}/include/"'
        )
        return [
            CommandPlan(command="bash", args=["-c", script], sudo=True, label="cuDNN merge"),
        ]

    def install_root(self, version: SemVer, environ: Mapping[str, str]) -> str:
        return f"/usr/local/cuda-{version.major_minor}"

    @property
    def uploads_install_log(self) -> bool:
        return True


class WindowsStrategy(PlatformStrategy):
    profile = PlatformProfile.WINDOWS

    def file_extension(self, kind: ArtifactKind) -> str:
        return "exe" if kind is ArtifactKind.PRIMARY else "zip"

    def build_install_command(
        self,
        executable: str,
        version: SemVer,
        sub_packages: list[str],
        linux_local_args: list[str],
    ) -> CommandPlan:
        args = ["-s"]
        for package in sub_packages:
            if package == DISPLAY_DRIVER_PACKAGE:
                args.append(package)
            else:
                args.append(f"{package}_{version.major_minor}")
        return CommandPlan(command=executable, args=args, label="CUDA installation")

    def build_extract_command(self, archive: str, install_root: str) -> CommandPlan:
        return CommandPlan(
            command="powershell",
            args=[
                "-command",
                "Expand-Archive",
                "-LiteralPath",
                f'"{archive}"',
                "-DestinationPath",
                f'"{install_root}"',
                "-force",
            ],
            label="cuDNN extraction",
        )

    def build_merge_moves(self, install_root: str, archive_dir: str) -> list[CommandPlan]:
        src = f"{install_root}\\{archive_dir}"
        passes = [
            (f"{src}\\bin\\\\*.dll", f"{install_root}\\bin"),
            (f"{src}\\include\\\\*.h", f"{install_root}\\include"),
            (f"{src}\\lib\\x64\\\\*.lib", f"{install_root}\\lib\\x64"),
        ]
        return [
            CommandPlan(
                command="powershell",
                args=[
                    "-command",
                    "Get-ChildItem",
                    "-Path",
                    f'"{pattern}"',
                    "-Recurse",
                    "|",
                    "Move-Item",
                    "-Destination",
                    f'"{destination}"',
                    "-force",
                ],
                label="cuDNN merge",
            )
            for pattern, destination in passes
        ]

    def install_root(self, version: SemVer, environ: Mapping[str, str]) -> str:
        env_name = f"CUDA_PATH_V{version.major}_{version.minor}"
        root = environ.get(env_name)
        if root:
            return root
        return (
            "C:\\Program Files\\NVIDIA GPU Computing Toolkit\\CUDA\\"
            f"v{version.major_minor}"
        )


_STRATEGIES: dict[PlatformProfile, PlatformStrategy] = {
    PlatformProfile.LINUX: LinuxStrategy(),
    PlatformProfile.WINDOWS: WindowsStrategy(),
}


def strategy_for(profile: PlatformProfile) -> PlatformStrategy:
    """The command strategy for ``profile``."""
    return _STRATEGIES[profile]


def is_root() -> bool:
    """Whether the current process already runs as root (POSIX only)."""
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0
