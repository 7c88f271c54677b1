"""active command — list the open review requests used as ground truth."""

from __future__ import annotations

import click
from rich.console import Console

from reviewsweep_cli.settings import load_checked_config
from reviewsweep_core.exceptions import SweepError
from reviewsweep_core.runner import build_provider, fetch_active_set
from reviewsweep_core.scope import CancelScope

console = Console()


@click.command("active")
@click.option("--timeout", type=float, default=None, help="Deadline in seconds for the request.")
@click.pass_context
def active_cmd(ctx, timeout: float | None):
    """Show the ids of all currently open review requests."""
    config = load_checked_config(ctx, cli_overrides={"timeout": timeout, "backends": []})
    provider = build_provider(config)
    try:
        active = fetch_active_set(provider, CancelScope(timeout=config.get("timeout")))
    except SweepError as e:
        raise click.ClickException(f"[{e.stage}] {e.detail}")

    if not active:
        console.print("[yellow]No open review requests.[/yellow]")
        return
    console.print(f"{len(active)} open review request(s) on {provider.name}:")
    for review_id in sorted(active):
        console.print(f"  [bold]#{review_id}[/bold]")
