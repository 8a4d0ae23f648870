"""
Toolkit models — requests, resolved toolkits, and per-stage results.

ToolkitRequest is built once from process inputs and never mutated.
ResolvedToolkit is built by the version resolver; its primary URL is
filled in lazily, right before an origin download.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, model_validator

from cuda_setup.core.errors import InvalidMethod
from cuda_setup.core.models.semver import SemVer


class Method(str, Enum):
    """Acquisition method: redistributable installer or online installer."""

    LOCAL = "local"
    NETWORK = "network"


class PlatformProfile(str, Enum):
    """The two supported host platforms."""

    WINDOWS = "windows"
    LINUX = "linux"


class ArtifactKind(str, Enum):
    """Which of the two artifacts is being handled."""

    PRIMARY = "cuda"
    COMPANION = "cudnn"


def parse_method(value: str) -> Method:
    """Parse an acquisition method string.

    Raises:
        InvalidMethod: If ``value`` is neither ``local`` nor ``network``.
    """
    try:
        return Method(value)
    except ValueError:
        raise InvalidMethod(value) from None


class ToolkitRequest(BaseModel):
    """Raw version request, exactly as supplied by the caller."""

    model_config = ConfigDict(frozen=True)

    cuda: str
    cudnn: str = ""
    cudnn_url: str = ""
    method: Method = Method.LOCAL


class ResolvedToolkit(BaseModel):
    """A validated toolkit selection.

    Companion fields (``cudnn_version`` / ``cudnn_url``) are either
    both set or both unset.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    cuda_version: SemVer
    cuda_url: str | None = None
    cudnn_version: SemVer | None = None
    cudnn_url: AnyUrl | None = None

    @model_validator(mode="after")
    def _companion_pairing(self) -> ResolvedToolkit:
        if (self.cudnn_version is None) != (self.cudnn_url is None):
            raise ValueError("cudnn_version and cudnn_url must be set together")
        return self

    @property
    def has_companion(self) -> bool:
        return self.cudnn_version is not None

    def version_for(self, kind: ArtifactKind) -> SemVer | None:
        """The resolved version of ``kind``."""
        if kind is ArtifactKind.PRIMARY:
            return self.cuda_version
        return self.cudnn_version

    def url_for(self, kind: ArtifactKind) -> str | None:
        """The source URL of ``kind``, or None if not (yet) known."""
        if kind is ArtifactKind.PRIMARY:
            return self.cuda_url
        return str(self.cudnn_url) if self.cudnn_url is not None else None


AcquisitionTier = Literal["machine_cache", "remote_cache", "origin"]


class AcquisitionResult(BaseModel):
    """Where an artifact was found, and which cache tier produced it."""

    kind: ArtifactKind
    path: str
    tier: AcquisitionTier


class CommandPlan(BaseModel):
    """One platform-native command to run.

    Built fresh for every step; never persisted.
    """

    command: str
    args: list[str] = Field(default_factory=list)
    sudo: bool = False
    label: str = ""

    def argv(self) -> list[str]:
        """Full argument vector, with the sudo prefix when requested."""
        prefix = ["sudo"] if self.sudo else []
        return prefix + [self.command] + list(self.args)
