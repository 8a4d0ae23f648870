"""
Domain models — types shared by the provisioning services.

All models are re-exported here for convenient access:

    from cuda_setup.core.models import ResolvedToolkit, SemVer, PlatformProfile
"""

from cuda_setup.core.models.semver import SemVer
from cuda_setup.core.models.toolkit import (
    AcquisitionResult,
    ArtifactKind,
    CommandPlan,
    Method,
    PlatformProfile,
    ResolvedToolkit,
    ToolkitRequest,
    parse_method,
)

__all__ = [
    "AcquisitionResult",
    "ArtifactKind",
    "CommandPlan",
    "Method",
    "PlatformProfile",
    "ResolvedToolkit",
    "SemVer",
    "ToolkitRequest",
    "parse_method",
]
