"""
Setup use case — provision CUDA (and optionally cuDNN) end to end.

This is the top-level orchestrator: it resolves the requested version,
picks the install path (runfile pipeline or apt), installs, exports the
environment, publishes outputs, and merges cuDNN.  Every stage waits
for the previous one; later stages consume files produced earlier.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from cuda_setup.adapters.artifacts import ArtifactUploader, uploader_from_env
from cuda_setup.adapters.cache.remote_cache import DirectoryRemoteCache, remote_cache_from_env
from cuda_setup.adapters.cache.tool_cache import ToolCache
from cuda_setup.adapters.download import HttpDownloader
from cuda_setup.adapters.shell.command import CommandRunner
from cuda_setup.adapters.workflow import WorkflowCommands, failure_message
from cuda_setup.core.config.catalog import LinkCatalog, load_catalog
from cuda_setup.core.config.inputs import SetupInputs
from cuda_setup.core.errors import InputError
from cuda_setup.core.models.toolkit import Method, PlatformProfile
from cuda_setup.core.services.provision.acquisition import ArtifactAcquirer, download
from cuda_setup.core.services.provision.companion import (
    archive_directory_name,
    install_companion,
)
from cuda_setup.core.services.provision.environment import update_path
from cuda_setup.core.services.provision.installer import Runner, install_toolkit
from cuda_setup.core.services.provision.package_manager import apt_install, apt_setup, use_apt
from cuda_setup.core.services.provision.platform import get_platform, get_release
from cuda_setup.core.services.provision.version import resolve_toolkit

logger = logging.getLogger(__name__)


def default_work_dir() -> Path:
    """Scratch directory for downloads: ``<RUNNER_TEMP>/cuda-setup``."""
    temp = os.environ.get("RUNNER_TEMP") or tempfile.gettempdir()
    return Path(temp) / "cuda-setup"


@dataclass
class SetupServices:
    """Collaborators of one run.  ``from_env()`` wires the real ones."""

    profile: PlatformProfile
    release: str
    runner: Runner
    tool_cache: ToolCache
    downloader: HttpDownloader
    uploader: ArtifactUploader
    workflow: WorkflowCommands
    work_dir: Path
    remote_cache: DirectoryRemoteCache | None = None
    catalog_loader: Callable[[], LinkCatalog] = load_catalog

    @classmethod
    def from_env(cls, failure_stream: TextIO | None = None) -> SetupServices:
        """Real collaborators; ``failure_stream`` receives the failed-run annotation."""
        return cls(
            profile=get_platform(),
            release=get_release(),
            runner=CommandRunner(),
            tool_cache=ToolCache(),
            downloader=HttpDownloader(),
            uploader=uploader_from_env(),
            workflow=WorkflowCommands(stream=failure_stream),
            work_dir=default_work_dir(),
            remote_cache=remote_cache_from_env(),
        )


@dataclass
class SetupResult:
    """Result of one setup run."""

    cuda: str = ""
    cuda_path: str | None = None
    install_path: str = ""        # "runfile" or "apt"
    cudnn_installed: bool = False
    error: str | None = None
    error_type: str | None = None
    steps: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error, "error_type": self.error_type}
        return {
            "cuda": self.cuda,
            "CUDA_PATH": self.cuda_path,
            "install_path": self.install_path,
            "cudnn_installed": self.cudnn_installed,
            "steps": self.steps,
        }


def provision(inputs: SetupInputs, services: SetupServices, result: SetupResult) -> None:
    """Run every stage, raising the first failure unchanged."""
    profile = services.profile
    request = inputs.toolkit_request()

    toolkit = resolve_toolkit(
        request.cuda,
        request.cudnn,
        request.cudnn_url,
        request.method,
        profile=profile,
        catalog=services.catalog_loader(),
    )
    result.steps.append("resolve")

    if request.method is Method.LOCAL and inputs.sub_packages and profile is PlatformProfile.LINUX:
        raise InputError(
            "Subpackages on 'local' method is not supported on Linux, use 'network' instead"
        )

    archive: str | None = None
    if use_apt(request.method, profile):
        result.install_path = "apt"
        apt_setup(
            toolkit.cuda_version,
            runner=services.runner,
            downloader=services.downloader,
            work_dir=services.work_dir,
        )
        apt_install(toolkit.cuda_version, inputs.sub_packages, runner=services.runner)
        result.steps.append("apt")
    else:
        result.install_path = "runfile"
        use_remote_cache = inputs.use_github_cache
        if use_remote_cache and services.remote_cache is None:
            logger.warning("Remote cache requested but not configured, skipping it")
            use_remote_cache = False

        acquirer = ArtifactAcquirer(
            profile=profile,
            release=services.release,
            tool_cache=services.tool_cache,
            downloader=services.downloader,
            catalog_loader=services.catalog_loader,
            work_dir=services.work_dir,
            remote_cache=services.remote_cache,
        )
        executable, archive = download(toolkit, request.method, use_remote_cache, acquirer)
        result.steps.append("acquire")

        install_toolkit(
            executable,
            toolkit,
            inputs.sub_packages,
            inputs.linux_local_args,
            profile=profile,
            runner=services.runner,
            uploader=services.uploader,
        )
        result.steps.append("install")

    cuda_path = update_path(toolkit.cuda_version, profile=profile, sink=services.workflow)
    result.cuda_path = cuda_path

    services.workflow.set_output("cuda", request.cuda)
    services.workflow.set_output("CUDA_PATH", cuda_path)
    result.steps.append("outputs")

    if archive is not None and toolkit.cudnn_url is not None:
        directory_name = archive_directory_name(inputs.cudnn_archive_dir, toolkit.cudnn_url)
        install_companion(
            archive,
            directory_name,
            cuda_path,
            profile=profile,
            runner=services.runner,
        )
        result.cudnn_installed = True
        result.steps.append("cudnn")


def run_setup(
    inputs: SetupInputs,
    services: SetupServices | None = None,
    *,
    failure_stream: TextIO | None = None,
) -> SetupResult:
    """Provision CUDA per ``inputs``.

    Any failure ends the run: it is logged, reported through the
    workflow's failure signal, and recorded in the result.

    Args:
        inputs: Validated process inputs.
        services: Collaborators; wired from the environment if None.
        failure_stream: Where the failure annotation goes when
            ``services`` is None (default: stdout).

    Returns:
        SetupResult; ``error`` is set when the run failed.
    """
    result = SetupResult(cuda=inputs.cuda)
    if services is not None:
        workflow = services.workflow
    else:
        workflow = WorkflowCommands(stream=failure_stream)

    try:
        # Platform detection happens here and may itself fail
        services = services or SetupServices.from_env(failure_stream)
        services.work_dir.mkdir(parents=True, exist_ok=True)
        provision(inputs, services, result)
    except Exception as e:
        logger.debug("Setup failed", exc_info=True)
        result.error = failure_message(e)
        result.error_type = type(e).__name__
        workflow.set_failed(result.error)
        return result

    logger.info("CUDA %s installed at %s", inputs.cuda, result.cuda_path)
    return result
