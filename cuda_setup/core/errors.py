"""
Error taxonomy — every failure a setup run can end with.

All errors derive from ``SetupError``.  None of them is retried
internally; they bubble up to the run entry point, which turns the
message into a single failed-run signal.
"""

from __future__ import annotations


class SetupError(Exception):
    """Base class for all provisioning failures."""


# ── Input / configuration ───────────────────────────────────────


class InputError(SetupError):
    """Raised when a process input cannot be parsed."""


class InvalidMethod(InputError):
    """Raised when the acquisition method is neither ``local`` nor ``network``."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(
            f"Invalid method: expected either 'local' or 'network', got '{value}'"
        )


class CatalogError(SetupError):
    """Raised when the download link catalog is missing or malformed."""


# ── Version resolution ──────────────────────────────────────────


class InvalidVersionFormat(SetupError):
    """Raised when a version string is not a strict semantic version."""

    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f"Invalid Version: {version}")


class VersionUnavailable(SetupError):
    """Raised when a version is not present in the active catalog."""

    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f"CUDA version not available: {version}")


class InvalidURL(SetupError):
    """Raised when the companion archive URL cannot be parsed."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Invalid URL: {url}")


# ── Acquisition ─────────────────────────────────────────────────


class EmptyDownloadURL(SetupError):
    """Raised when an origin download is needed but no URL is known."""

    def __init__(self, artifact: str = "") -> None:
        self.artifact = artifact
        suffix = f" for {artifact}" if artifact else ""
        super().__init__(f"Empty URL{suffix}")


class NetworkModeUnsupported(SetupError):
    """Raised when an online-installer URL is requested on a platform without one.

    Callers only reach this through a logic error: the package-manager
    path handles ``network`` on platforms without online installers.
    """


class MultipleFilesInCache(SetupError):
    """Raised when a cache directory holds more than one artifact file."""

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(f"Got multiple files in tool cache: {count}")


class EmptyCache(SetupError):
    """Raised when a cache directory holds no artifact file."""

    def __init__(self) -> None:
        super().__init__("Got no files in tool cache")


class CacheAlreadyExists(Exception):
    """Raised by a remote cache when an entry for the key is already stored.

    Not a ``SetupError``: acquisition treats it as a successful save.
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Cache entry already exists: {key}")


# ── Installation ────────────────────────────────────────────────


class InstallFailed(SetupError):
    """Raised when an installer, archive, or move command fails."""

    def __init__(self, step: str, error: BaseException) -> None:
        self.step = step
        self.error = error
        super().__init__(f"Error during {step}: {error}")


class UnsupportedPlatform(SetupError):
    """Raised when the host is neither Linux nor Windows."""

    def __init__(self, platform_name: str) -> None:
        self.platform_name = platform_name
        super().__init__(f"Unsupported OS: {platform_name}")
