"""Source-control token resolution with gh CLI fallback.

Resolution order for GitHub (stops at first success):
  1. GITHUB_TOKEN environment variable (CI / explicit override)
  2. `gh auth token` (GitHub CLI session — works after `gh auth login`)

GitLab tokens come from the config file or GITLAB_TOKEN only.
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)


def resolve_github_token() -> str | None:
    """Return a GitHub token or None if no valid source is available.

    Never raises — callers should check for None and emit a UsageError.
    """
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            gh_token = result.stdout.strip()
            if gh_token:
                logger.debug("Resolved GitHub token via gh CLI session.")
                return gh_token
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # gh is not installed or timed out.
        pass

    return None


def resolve_token(config: dict) -> str | None:
    """Return the token for the configured source, filling it into config."""
    source = config.get("source")
    section = config.setdefault(source, {}) if source in ("gitlab", "github") else {}
    token = section.get("token")
    if not token and source == "github":
        token = resolve_github_token()
        if token:
            section["token"] = token
    return token
