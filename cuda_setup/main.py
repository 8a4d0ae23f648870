"""
CUDA Toolkit Setup — CLI entrypoint.

Usage:
    python -m cuda_setup.main --help
    python -m cuda_setup.main setup --cuda 11.2.2
    python -m cuda_setup.main versions --platform windows --method network
"""

from __future__ import annotations

import json
import os
import sys

import click

from cuda_setup import __version__
from cuda_setup.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="cuda-setup")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (installer output included).")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, debug: bool) -> None:
    """CUDA Toolkit Setup — install the CUDA toolkit on CI hosts."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get("CUDA_SETUP_LOG_FILE"),
        log_file_level=os.environ.get("CUDA_SETUP_LOG_FILE_LEVEL"),
    )


@cli.command()
@click.option("--cuda", default=None, help="CUDA version to install, e.g. 11.2.2.")
@click.option("--cudnn", default=None, help="cuDNN version to merge into the toolkit.")
@click.option("--cudnn-url", "cudnn_url", default=None, help="cuDNN archive URL.")
@click.option(
    "--cudnn-archive-dir",
    "cudnn_archive_dir",
    default=None,
    help="Name of the directory inside the cuDNN archive.",
)
@click.option("--sub-packages", "sub_packages", default=None, help="JSON array of sub-packages.")
@click.option(
    "--method",
    type=click.Choice(["local", "network"]),
    default=None,
    help="Installer type: redistributable (local) or online (network).",
)
@click.option(
    "--linux-local-args",
    "linux_local_args",
    default=None,
    help="JSON array of extra Linux runfile arguments.",
)
@click.option(
    "--use-github-cache/--no-use-github-cache",
    "use_github_cache",
    default=None,
    help="Use the shared remote cache.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def setup(
    cuda: str | None,
    cudnn: str | None,
    cudnn_url: str | None,
    cudnn_archive_dir: str | None,
    sub_packages: str | None,
    method: str | None,
    linux_local_args: str | None,
    use_github_cache: bool | None,
    as_json: bool,
) -> None:
    """Install CUDA (and optionally cuDNN).

    Options not given on the command line are read from the runner's
    INPUT_* environment variables.

    Examples:

        cuda-setup setup --cuda 11.2.2

        cuda-setup setup --cuda 12.1.0 --method network --sub-packages '["nvcc"]'
    """
    from cuda_setup.adapters.workflow import WorkflowCommands, failure_message
    from cuda_setup.core.config.inputs import load_inputs
    from cuda_setup.core.use_cases.setup import run_setup

    overrides = {
        "cuda": cuda,
        "cudnn": cudnn,
        "cudnn_url": cudnn_url,
        "cudnn_archive_dir": cudnn_archive_dir,
        "sub-packages": sub_packages,
        "method": method,
        "linux-local-args": linux_local_args,
        "use-github-cache": None if use_github_cache is None else str(use_github_cache).lower(),
    }

    # Keep stdout pure JSON in --json mode
    failure_stream = sys.stderr if as_json else None

    try:
        inputs = load_inputs(os.environ, overrides)
    except Exception as e:
        WorkflowCommands(stream=failure_stream).set_failed(failure_message(e))
        sys.exit(1)

    result = run_setup(inputs, failure_stream=failure_stream)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if not result.ok:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)

    click.secho(f"✅ CUDA {result.cuda} installed", fg="green", bold=True)
    click.echo(f"   CUDA_PATH: {result.cuda_path}")
    click.echo(f"   Install path: {result.install_path}")
    if result.cudnn_installed:
        click.echo("   cuDNN: merged")


@cli.command()
@click.option(
    "--platform",
    "platform_name",
    type=click.Choice(["linux", "windows"]),
    default=None,
    help="Platform to list (default: this host).",
)
@click.option(
    "--method",
    type=click.Choice(["local", "network"]),
    default="local",
    help="Installer type.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def versions(platform_name: str | None, method: str, as_json: bool) -> None:
    """List the CUDA versions available for a platform and method."""
    from cuda_setup.core.config.catalog import load_catalog
    from cuda_setup.core.errors import SetupError
    from cuda_setup.core.models.toolkit import Method, PlatformProfile
    from cuda_setup.core.services.provision.platform import get_platform
    from cuda_setup.core.services.provision.version import available_versions

    try:
        profile = PlatformProfile(platform_name) if platform_name else get_platform()
        found = available_versions(load_catalog(), profile, Method(method))
    except SetupError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    names = [str(v) for v in found]
    if as_json:
        click.echo(json.dumps({"platform": profile.value, "method": method, "versions": names}))
        return

    click.secho(f"CUDA versions ({profile.value}, {method}):", bold=True)
    for name in names:
        click.echo(f"   • {name}")


# ── Register sub-command groups from cuda_setup/ui/cli/ ─────────

from cuda_setup.ui.cli.cache import cache  # noqa: E402

cli.add_command(cache)


if __name__ == "__main__":
    cli()
