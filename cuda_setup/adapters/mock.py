"""
Mock command runner — test double for CommandRunner.

Records every plan it receives and succeeds by default.  Individual
commands can be configured to fail.
"""

from __future__ import annotations

import subprocess

from cuda_setup.core.models.toolkit import CommandPlan


class MockCommandRunner:
    """Records command plans instead of executing them."""

    def __init__(self) -> None:
        self._failures: dict[str, int] = {}
        self._call_log: list[CommandPlan] = []

    @property
    def call_log(self) -> list[CommandPlan]:
        """All plans this mock has received, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def set_failure(self, command: str, returncode: int = 1) -> None:
        """Make every plan whose command equals ``command`` fail."""
        self._failures[command] = returncode

    def run(self, plan: CommandPlan) -> int:
        self._call_log.append(plan)
        if plan.command in self._failures:
            raise subprocess.CalledProcessError(
                self._failures[plan.command], plan.argv(), output="", stderr="[mock] failure"
            )
        return 0

    def reset(self) -> None:
        """Clear call log and configured failures."""
        self._call_log.clear()
        self._failures.clear()
