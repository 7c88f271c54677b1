"""scan command — report dangling review environments across all backends."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.table import Table

from reviewsweep_cli.settings import load_checked_config
from reviewsweep_core.aggregator import DanglingItem
from reviewsweep_core.config import BACKENDS
from reviewsweep_core.exceptions import SweepError
from reviewsweep_core.runner import SweepReport, run_sweep

console = Console()

_BACKEND_STYLE = {"k8s": "cyan", "mongo": "green", "minio": "magenta"}


def format_ids(ids) -> str:
    return ", ".join(str(i) for i in ids) if ids else "—"


def print_summary(report: SweepReport) -> None:
    table = Table(title=f"Dangling review resources ({report.source})", show_header=True, header_style="bold cyan")
    table.add_column("Backend", style="bold")
    table.add_column("Dangling", justify="right")
    table.add_column("Review ids")
    for backend, ids in report.by_backend().items():
        table.add_row(backend, str(len(ids)), format_ids(ids))
    console.print(table)
    console.print(f"[dim]{len(report.dangling)} dangling item(s) in {report.elapsed:.1f}s[/dim]")


@click.command("scan")
@click.option(
    "--backend",
    "backends",
    multiple=True,
    type=click.Choice(BACKENDS),
    help="Backend to scan. Repeat for several. Overrides config file.",
)
@click.option("--timeout", type=float, default=None, help="Deadline in seconds for the whole run.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
    help="Output format.",
)
@click.pass_context
def scan_cmd(ctx, backends: tuple[str, ...], timeout: float | None, output_format: str):
    """Find review environments whose merge request is no longer open.

    Fetches the open review requests, scans every configured backend in
    parallel and prints each dangling review id with the backend it was
    found in. Nothing is deleted.

    \b
    Environment variables:
      GITLAB_TOKEN / GITHUB_TOKEN   source-control token
      REVIEWSWEEP_MONGO_URI         MongoDB connection URI
      MINIO_ACCESS_KEY / MINIO_SECRET_KEY
      KUBECONFIG                    kubeconfig path
    """
    overrides = {"backends": list(backends) or None, "timeout": timeout}
    config = load_checked_config(ctx, cli_overrides=overrides)
    text = output_format == "text"

    def on_active(active: frozenset[int]) -> None:
        if text:
            console.print(f"Open review requests: [bold]{format_ids(sorted(active))}[/bold]")

    def on_item(item: DanglingItem) -> None:
        if text:
            style = _BACKEND_STYLE.get(item.backend, "white")
            console.print(f"  [{style}]{item.backend:>6}[/{style}]  {item.review_id}")

    try:
        report = run_sweep(config, on_active=on_active, on_item=on_item)
    except SweepError as e:
        raise click.ClickException(f"[{e.stage}] {e.detail}")

    if text:
        print_summary(report)
    else:
        click.echo(json.dumps(report.to_dict(), indent=2))
