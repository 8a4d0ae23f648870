"""
Command runner — the SINGLE PLACE where install commands hit subprocess.

Runs a CommandPlan, routes its stdout/stderr line by line to the debug
log, and raises on a non-zero exit.  No timeout is applied; the CI job
bounds wall-clock time.
"""

from __future__ import annotations

import logging
import subprocess
import time

from cuda_setup.core.models.toolkit import CommandPlan
from cuda_setup.core.services.provision.platform import is_root

logger = logging.getLogger(__name__)


class CommandRunner:
    """Executes command plans on the host."""

    def run(self, plan: CommandPlan) -> int:
        """Run ``plan`` to completion.

        The ``sudo`` prefix is dropped when the process is already root.

        Returns:
            The exit code (always 0).

        Raises:
            subprocess.CalledProcessError: On a non-zero exit.
            OSError: If the executable cannot be started.
        """
        argv = plan.argv()
        if plan.sudo and is_root():
            argv = argv[1:]

        logger.debug("Running %s: %s", plan.label or plan.command, argv)
        start = time.monotonic()
        result = subprocess.run(argv, capture_output=True, text=True)
        elapsed_ms = int((time.monotonic() - start) * 1000)

        for line in result.stdout.splitlines():
            logger.debug(line)
        for line in result.stderr.splitlines():
            logger.debug("Error: %s", line)

        logger.debug("Exit code %d after %dms", result.returncode, elapsed_ms)
        if result.returncode != 0:
            raise subprocess.CalledProcessError(
                result.returncode, argv, output=result.stdout, stderr=result.stderr
            )
        return result.returncode
