"""Adapters — bindings to the host, caches, network, and CI runner.

Public re-exports for convenient access.
"""

from cuda_setup.adapters.artifacts import ArtifactUploader, UploadResult
from cuda_setup.adapters.cache.remote_cache import DirectoryRemoteCache
from cuda_setup.adapters.cache.tool_cache import ToolCache
from cuda_setup.adapters.download import HttpDownloader
from cuda_setup.adapters.mock import MockCommandRunner
from cuda_setup.adapters.shell.command import CommandRunner
from cuda_setup.adapters.workflow import WorkflowCommands

__all__ = [
    "ArtifactUploader",
    "CommandRunner",
    "DirectoryRemoteCache",
    "HttpDownloader",
    "MockCommandRunner",
    "ToolCache",
    "UploadResult",
    "WorkflowCommands",
]
