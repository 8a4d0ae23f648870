"""
Install orchestration — PREPARE → EXECUTE → CLEANUP.

CLEANUP always runs.  An install failure is re-raised after CLEANUP;
a failing log upload during CLEANUP is logged and never replaces it.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Protocol

from cuda_setup.core.errors import InstallFailed
from cuda_setup.core.models.toolkit import CommandPlan, PlatformProfile, ResolvedToolkit
from cuda_setup.core.services.provision.platform import LINUX_INSTALL_LOG, strategy_for

logger = logging.getLogger(__name__)

INSTALL_LOG_ARTIFACT = "install-log"


class Runner(Protocol):
    def run(self, plan: CommandPlan) -> int: ...


class Uploader(Protocol):
    def upload(
        self,
        name: str,
        files: list[str],
        root_directory: str,
        *,
        continue_on_error: bool = True,
    ) -> object: ...


def run_step(runner: Runner, plan: CommandPlan) -> None:
    """Execute one plan, wrapping process errors in ``InstallFailed``."""
    step = plan.label or plan.command
    try:
        exit_code = runner.run(plan)
        logger.debug("%s exit code: %s", step, exit_code)
    except (subprocess.CalledProcessError, OSError) as e:
        logger.debug("Error during %s: %s", step, e)
        raise InstallFailed(step, e) from e


def upload_install_log(uploader: Uploader) -> BaseException | None:
    """Upload the Linux installer log.

    Returns:
        The upload error, if any, instead of raising it.
    """
    log = Path(LINUX_INSTALL_LOG)
    try:
        result = uploader.upload(
            INSTALL_LOG_ARTIFACT,
            [str(log)],
            str(log.parent),
            continue_on_error=True,
        )
        logger.debug("Upload result: %s", result)
        return None
    except Exception as e:
        logger.warning("Could not upload installer log: %s", e)
        return e


def install_toolkit(
    executable: str,
    toolkit: ResolvedToolkit,
    sub_packages: list[str],
    linux_local_args: list[str],
    *,
    profile: PlatformProfile,
    runner: Runner,
    uploader: Uploader,
) -> None:
    """Run the CUDA installer silently and clean up after it.

    Args:
        executable: Verified installer path.
        toolkit: Resolved toolkit (its version shapes Windows sub-packages).
        sub_packages: Windows sub-package names to install.
        linux_local_args: Extra runfile arguments, passed through as-is.
        profile: Host platform profile.
        runner: Executes the install command.
        uploader: Receives the Linux installer log.

    Raises:
        InstallFailed: The installer exited non-zero or could not start.
    """
    strategy = strategy_for(profile)
    plan = strategy.build_install_command(
        executable, toolkit.cuda_version, sub_packages, linux_local_args
    )

    try:
        logger.debug("Running install executable: %s", executable)
        run_step(runner, plan)
    finally:
        # Always upload the installation log, regardless of error
        if strategy.uploads_install_log:
            upload_install_log(uploader)
        Path(executable).unlink(missing_ok=True)
