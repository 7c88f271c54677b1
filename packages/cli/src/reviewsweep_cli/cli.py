"""CLI entry point for reviewsweep.

Commands:
  scan    — report review environments whose merge request is no longer open
  active  — list the currently open review requests
  init    — interactive wizard that writes the config file
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from reviewsweep_cli.commands.active import active_cmd
from reviewsweep_cli.commands.init import init_cmd
from reviewsweep_cli.commands.scan import scan_cmd


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("reviewsweep"),
    prog_name="reviewsweep",
)
@click.option(
    "--config",
    "config_path",
    default=".reviewsweep.yml",
    show_default=True,
    help="Path to the configuration file (YAML, or a legacy access.json).",
    envvar="REVIEWSWEEP_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Find review environments left behind by closed merge requests."""
    ctx.ensure_object(dict)
    _configure_logging(verbose)
    ctx.obj["config_path"] = config_path


main.add_command(scan_cmd)
main.add_command(active_cmd)
main.add_command(init_cmd)
