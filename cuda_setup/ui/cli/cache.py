"""
CLI commands for the machine-local installer cache.

Thin wrappers over ``cuda_setup.adapters.cache.tool_cache``.
"""

from __future__ import annotations

import json

import click


@click.group()
def cache() -> None:
    """Installer cache — inspect or clear cached installers and archives."""


@cache.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def status(as_json: bool) -> None:
    """Show cached tools, versions, and sizes."""
    from cuda_setup.adapters.cache.tool_cache import ToolCache

    summary = ToolCache().status()

    if as_json:
        click.echo(json.dumps(summary, indent=2))
        return

    click.secho(f"\n📦 {summary['cache_dir']}", fg="cyan", bold=True)
    if not summary["tools"]:
        click.echo("   (empty)")
    for tool, info in summary["tools"].items():
        versions = ", ".join(info["versions"]) or "-"
        click.echo(f"   • {tool}  [{versions}]  {info['size_mb']} MB")
    click.echo(f"   Total: {summary['total_size_mb']} MB")
    click.echo()


@cache.command()
@click.option("--tool", default=None, help="Tool id to clear (default: everything).")
@click.option("--yes", is_flag=True, help="Skip confirmation.")
def clear(tool: str | None, yes: bool) -> None:
    """Remove cached installers."""
    from cuda_setup.adapters.cache.tool_cache import ToolCache

    target = tool or "all cached tools"
    if not yes:
        click.confirm(f"Clear {target}?", abort=True)

    cleared = ToolCache().clear(tool)
    click.secho(f"✅ Cleared: {cleared}", fg="green")
