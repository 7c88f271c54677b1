"""Config loading shared by the commands."""

from __future__ import annotations

import click

from reviewsweep_cli.auth import resolve_token
from reviewsweep_core.config import load_config, validate_config
from reviewsweep_core.exceptions import ConfigError


def load_checked_config(ctx: click.Context, cli_overrides: dict | None = None) -> dict:
    """Load and validate the config for a command, resolving the source token.

    Config problems surface as UsageError so they exit before any network call.
    """
    config_path = ctx.obj.get("config_path", ".reviewsweep.yml") if ctx.obj else ".reviewsweep.yml"
    try:
        config = load_config(config_path, cli_overrides=cli_overrides)
        resolve_token(config)
        return validate_config(config)
    except ConfigError as e:
        raise click.UsageError(f"[{e.stage}] {e.detail}")
