from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from reviewsweep_core.exceptions import ConfigError

BACKENDS = ("cluster", "database", "object-store")
SOURCES = ("gitlab", "github")

DEFAULT_CONFIG: dict = {
    "source": "gitlab",
    "gitlab": {"url": "https://git.niisi.ru", "project": 42, "token": None},
    "github": {"repo": None, "token": None},
    "mongo": None,
    "minio": {"endpoint": None, "access": None, "secret": None, "secure": False},
    "kubeconfig": None,
    "kube_context": None,
    "backends": list(BACKENDS),
    "timeout": None,  # seconds; None = no deadline
}

# Environment variables win over the file so CI can inject secrets without
# writing them to disk.
_ENV_OVERRIDES = {
    "GITLAB_TOKEN": ("gitlab", "token"),
    "GITHUB_TOKEN": ("github", "token"),
    "REVIEWSWEEP_MONGO_URI": ("mongo", None),
    "MINIO_ACCESS_KEY": ("minio", "access"),
    "MINIO_SECRET_KEY": ("minio", "secret"),
    "KUBECONFIG": ("kubeconfig", None),
}


@dataclass(frozen=True)
class ClusterConfig:
    """How to reach the Kubernetes cluster.

    An empty ``kubeconfig`` lets the kubernetes client fall back to its own
    discovery (in-cluster service account).
    """

    kubeconfig: str = ""
    context: Optional[str] = None

    @classmethod
    def from_env(cls, kubeconfig: Optional[str] = None, context: Optional[str] = None) -> "ClusterConfig":
        if kubeconfig:
            return cls(kubeconfig=kubeconfig, context=context)
        env_path = os.environ.get("KUBECONFIG")
        if env_path:
            return cls(kubeconfig=env_path, context=context)
        home = os.path.expanduser("~")
        if home == "~":
            return cls(kubeconfig="", context=context)
        return cls(kubeconfig=os.path.join(home, ".kube", "config"), context=context)


def _fresh_defaults() -> dict:
    config = dict(DEFAULT_CONFIG)
    for key in ("gitlab", "github", "minio"):
        config[key] = dict(DEFAULT_CONFIG[key])
    config["backends"] = list(DEFAULT_CONFIG["backends"])
    return config


def _merge_file(config: dict, file_config: dict) -> None:
    for key, value in file_config.items():
        # Legacy access.json stores the GitLab token as a bare string.
        if key == "gitlab" and isinstance(value, str):
            value = {"token": value}
        if key in ("gitlab", "github", "minio"):
            if isinstance(value, dict):
                config[key].update(value)
            elif value is not None:
                raise ConfigError(f"{key} must be a mapping in the config file, got {type(value).__name__}")
        else:
            config[key] = value


def load_config(config_path: str = ".reviewsweep.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. The config file (YAML, or JSON such as a legacy access.json)
      3. CLI argument overrides
      4. Credentials from environment variables
    """
    config = _fresh_defaults()

    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}", context={"path": config_path})
    try:
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}", context={"path": config_path}) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed config file {config_path}: {e}", context={"path": config_path}) from e
    if not isinstance(file_config, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping", context={"path": config_path})
    _merge_file(config, file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    for env_name, (section, field_name) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if not value:
            continue
        if field_name is None:
            config[section] = value
        else:
            config[section][field_name] = value

    return config


def validate_config(config: dict) -> dict:
    """Check that every enabled stage has what it needs.

    Raises ConfigError naming the first missing key.
    """
    source = config.get("source")
    if source not in SOURCES:
        raise ConfigError(f"Unknown source {source!r}. Choose one of: {', '.join(SOURCES)}.")
    if source == "gitlab":
        gitlab = config.get("gitlab") or {}
        for key in ("url", "project", "token"):
            if not gitlab.get(key):
                raise ConfigError(f"Missing gitlab.{key} in config (or GITLAB_TOKEN for the token).")
    else:
        github = config.get("github") or {}
        if not github.get("repo"):
            raise ConfigError("Missing github.repo in config.")
        if not github.get("token"):
            raise ConfigError("Missing GitHub token. Set GITHUB_TOKEN or run `gh auth login` first.")

    backends = config.get("backends") or []
    unknown = [b for b in backends if b not in BACKENDS]
    if unknown:
        raise ConfigError(f"Unknown backend(s): {', '.join(unknown)}. Choose from: {', '.join(BACKENDS)}.")

    if "database" in backends and not config.get("mongo"):
        raise ConfigError("Missing mongo connection URI in config (or REVIEWSWEEP_MONGO_URI).")
    if "object-store" in backends:
        minio = config.get("minio") or {}
        for key in ("endpoint", "access", "secret"):
            if not minio.get(key):
                raise ConfigError(f"Missing minio.{key} in config.")

    timeout = config.get("timeout")
    if timeout is not None:
        try:
            timeout = float(timeout)
        except (TypeError, ValueError):
            raise ConfigError(f"timeout must be a number of seconds, got {timeout!r}")
        if timeout <= 0:
            raise ConfigError("timeout must be positive.")
        config["timeout"] = timeout

    return config
