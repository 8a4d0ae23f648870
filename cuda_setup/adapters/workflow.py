"""
Workflow commands — outputs, environment exports, and failure signals.

Writes to the runner's file commands (``GITHUB_OUTPUT``, ``GITHUB_ENV``,
``GITHUB_PATH``).  When a file is not configured (local runs), the
value is logged instead so nothing is silently lost.
"""

from __future__ import annotations

import logging
import os
import sys
import uuid
from collections.abc import MutableMapping
from typing import TextIO

logger = logging.getLogger(__name__)


def _key_value_block(name: str, value: str) -> str:
    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    return f"{name}<<{delimiter}\n{value}\n{delimiter}\n"


class WorkflowCommands:
    """File-command writer bound to one environment mapping."""

    def __init__(
        self,
        environ: MutableMapping[str, str] | None = None,
        stream: TextIO | None = None,
    ):
        self.environ = environ if environ is not None else os.environ
        self.stream = stream

    def _append(self, env_name: str, text: str) -> bool:
        path = self.environ.get(env_name)
        if not path:
            return False
        with open(path, "a", encoding="utf-8") as f:
            f.write(text)
        return True

    def set_output(self, name: str, value: str) -> None:
        """Publish a step output for downstream steps."""
        if not self._append("GITHUB_OUTPUT", _key_value_block(name, value)):
            logger.info("Output %s=%s", name, value)

    def export_variable(self, name: str, value: str) -> None:
        """Export an environment variable to this and later steps."""
        self.environ[name] = value
        if not self._append("GITHUB_ENV", _key_value_block(name, value)):
            logger.info("Export %s=%s", name, value)

    def add_path(self, path: str) -> None:
        """Prepend ``path`` to PATH for this and later steps."""
        current = self.environ.get("PATH", "")
        self.environ["PATH"] = f"{path}{os.pathsep}{current}" if current else path
        if not self._append("GITHUB_PATH", f"{path}\n"):
            logger.info("Add to PATH: %s", path)

    def set_failed(self, message: str) -> None:
        """Emit the failed-run annotation."""
        stream = self.stream or sys.stdout
        stream.write(f"::error::{_escape(message)}\n")
        stream.flush()


def _escape(message: str) -> str:
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def failure_message(error: BaseException) -> str:
    """The user-visible message for a run that ended with ``error``."""
    text = str(error)
    return text if text else "Unknown error"
