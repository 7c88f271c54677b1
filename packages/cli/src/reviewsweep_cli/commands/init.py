"""init command — interactive setup wizard.

Writes the config file once so every later run is a bare `reviewsweep scan`.
Tokens and secrets the user leaves empty are expected from the environment
(GITLAB_TOKEN, GITHUB_TOKEN, MINIO_ACCESS_KEY, MINIO_SECRET_KEY).
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import click
import yaml
from rich.console import Console

from reviewsweep_core.config import DEFAULT_CONFIG

console = Console()


@click.command("init")
@click.pass_context
def init_cmd(ctx):
    """Set up reviewsweep for this project.

    Detects the source-control remote, asks which backends to scan and
    writes the config file (default .reviewsweep.yml).
    """
    config_path = Path(ctx.obj.get("config_path", ".reviewsweep.yml") if ctx.obj else ".reviewsweep.yml")
    console.print("\n[bold cyan]reviewsweep init[/bold cyan] — setup wizard\n")

    # --- Detect the remote ---
    detected = _detect_remote_from_git()
    if detected:
        console.print(f"[dim]Detected remote: {detected[0]}/{detected[1]}[/dim]")
    on_github = detected is not None and detected[0] == "github.com"
    on_gitlab = detected is not None and not on_github

    source = click.prompt(
        "Source control",
        type=click.Choice(["gitlab", "github"]),
        default="github" if on_github else "gitlab",
    )
    config: dict = {"source": source}

    if source == "gitlab":
        gitlab_defaults = DEFAULT_CONFIG["gitlab"]
        url = click.prompt("GitLab URL", default=f"https://{detected[0]}" if on_gitlab else gitlab_defaults["url"])
        project = click.prompt(
            "GitLab project id or path", default=detected[1] if on_gitlab else str(gitlab_defaults["project"])
        )
        config["gitlab"] = {"url": url, "project": int(project) if project.isdigit() else project}
        token_env = "GITLAB_TOKEN"
    else:
        repo = click.prompt("GitHub repository (owner/name)", default=detected[1] if on_github else None)
        config["github"] = {"repo": repo}
        token_env = "GITHUB_TOKEN"

    # --- Backends ---
    backends = []
    if click.confirm("\nScan Kubernetes namespaces?", default=True):
        backends.append("cluster")
        kubeconfig = click.prompt("kubeconfig path (empty = $KUBECONFIG or ~/.kube/config)", default="")
        if kubeconfig:
            config["kubeconfig"] = kubeconfig

    if click.confirm("Scan MongoDB databases?", default=True):
        backends.append("database")
        mongo_uri = click.prompt("MongoDB URI (empty = $REVIEWSWEEP_MONGO_URI)", default="")
        if mongo_uri:
            config["mongo"] = mongo_uri

    if click.confirm("Scan MinIO buckets?", default=True):
        backends.append("object-store")
        endpoint = click.prompt("MinIO endpoint (host:port)")
        secure = click.confirm("Use TLS for MinIO?", default=False)
        config["minio"] = {"endpoint": endpoint, "secure": secure}

    config["backends"] = backends

    _write_config(config_path, config)
    console.print(f"[green]Created {config_path}[/green]")
    console.print(f"\n[yellow]Export [bold]{token_env}[/bold] before running a scan.[/yellow]")
    if "object-store" in backends:
        console.print("[yellow]Export MINIO_ACCESS_KEY and MINIO_SECRET_KEY too.[/yellow]")
    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Run a sweep with: [bold]reviewsweep scan[/bold]")


def _detect_remote_from_git() -> tuple[str, str] | None:
    """Return (host, project path) parsed from the origin remote, or None."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return parse_remote_url(result.stdout.strip())


def parse_remote_url(url: str) -> tuple[str, str] | None:
    # https://git.example.com/group/project.git  →  (git.example.com, group/project)
    # git@git.example.com:group/project.git      →  (git.example.com, group/project)
    if "://" in url:
        rest = url.split("://", 1)[1]
        host, _, path = rest.partition("/")
        host = host.rsplit("@", 1)[-1]
    elif "@" in url and ":" in url:
        host, _, path = url.split("@", 1)[1].partition(":")
    else:
        return None
    path = path.strip("/").removesuffix(".git")
    if not host or "/" not in path:
        return None
    return host, path


def _write_config(path: Path, config: dict) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
