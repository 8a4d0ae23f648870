"""
Process inputs — reads the action's inputs into a validated SetupInputs.

Inputs arrive as ``INPUT_<NAME>`` environment variables (the runner's
convention: upper-cased, hyphens kept) and may be overridden by CLI
options.  Precedence:  CLI option  >  INPUT_* env var  >  default.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping

from pydantic import BaseModel, Field

from cuda_setup.core.errors import InputError
from cuda_setup.core.models.toolkit import Method, ToolkitRequest, parse_method

logger = logging.getLogger(__name__)

# input name → default (as the raw string the runner would pass)
INPUT_DEFAULTS: dict[str, str] = {
    "cuda": "12.3.0",
    "cudnn": "",
    "cudnn_url": "",
    "cudnn_archive_dir": "",
    "sub-packages": "[]",
    "method": "local",
    "linux-local-args": '["--toolkit", "--samples"]',
    "use-github-cache": "true",
}

_TRUE = ("true", "True", "TRUE")
_FALSE = ("false", "False", "FALSE")


class SetupInputs(BaseModel):
    """All inputs of one setup run."""

    cuda: str
    cudnn: str = ""
    cudnn_url: str = ""
    cudnn_archive_dir: str = ""
    sub_packages: list[str] = Field(default_factory=list)
    method: Method = Method.LOCAL
    linux_local_args: list[str] = Field(default_factory=list)
    use_github_cache: bool = True

    def toolkit_request(self) -> ToolkitRequest:
        return ToolkitRequest(
            cuda=self.cuda,
            cudnn=self.cudnn,
            cudnn_url=self.cudnn_url,
            method=self.method,
        )


def env_name(name: str) -> str:
    """``sub-packages`` → ``INPUT_SUB-PACKAGES``."""
    return "INPUT_" + name.replace(" ", "_").upper()


def get_input(name: str, environ: Mapping[str, str], overrides: Mapping[str, str | None]) -> str:
    """Raw value of one input, trimmed."""
    value = overrides.get(name)
    if value is None:
        value = environ.get(env_name(name))
    if value is None:
        value = INPUT_DEFAULTS[name]
    return value.strip()


def parse_string_array(name: str, raw: str) -> list[str]:
    """Parse a JSON array of strings.

    Raises:
        InputError: If ``raw`` is not a JSON array of strings.
    """
    message = f"Error parsing input '{name}' to a JSON string array: {raw}"
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.debug(message)
        raise InputError(message) from None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        logger.debug(message)
        raise InputError(message)
    return value


def parse_boolean(name: str, raw: str) -> bool:
    """Parse a YAML 1.2 core-schema boolean.

    Raises:
        InputError: For anything but true/True/TRUE/false/False/FALSE.
    """
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise InputError(
        f"Input does not meet YAML 1.2 \"Core Schema\" specification: {name}\n"
        "Support boolean input list: `true | True | TRUE | false | False | FALSE`"
    )


def load_inputs(
    environ: Mapping[str, str],
    overrides: Mapping[str, str | None] | None = None,
) -> SetupInputs:
    """Read and validate all inputs.

    Args:
        environ: Environment holding ``INPUT_*`` variables.
        overrides: Raw values that win over the environment (CLI options).

    Raises:
        InputError: A JSON-array or boolean input is malformed.
        InvalidMethod: The method is not ``local`` or ``network``.
    """
    overrides = overrides or {}

    def raw(name: str) -> str:
        value = get_input(name, environ, overrides)
        logger.debug("Desired %s: %s", name, value)
        return value

    inputs = SetupInputs(
        cuda=raw("cuda"),
        cudnn=raw("cudnn"),
        cudnn_url=raw("cudnn_url"),
        cudnn_archive_dir=raw("cudnn_archive_dir"),
        sub_packages=parse_string_array("sub-packages", raw("sub-packages")),
        method=parse_method(raw("method")),
        linux_local_args=parse_string_array("linux-local-args", raw("linux-local-args")),
        use_github_cache=parse_boolean("use-github-cache", raw("use-github-cache")),
    )
    logger.debug("Parsed method: %s", inputs.method.value)
    return inputs
