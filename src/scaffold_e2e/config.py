"""Harness configuration management.

Handles configuration stored in ~/.scaffold-e2e/config.yaml (or a file
given on the command line). Supports environment variable overrides.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import SetupError

DEFAULT_CERT_MANAGER_URL = (
    "https://github.com/jetstack/cert-manager/releases/download/v0.11.0/cert-manager.yaml"
)

ENV_PREFIX = "SCAFFOLD_E2E_"

# Legacy variable names still honoured
ENV_ALIASES = {
    "kind_cluster": "KIND_CLUSTER",
}


@dataclass
class HarnessConfig:
    """Harness configuration."""

    work_root: str = "."
    kubebuilder_bin: str = "kubebuilder"
    kubectl_bin: str = "kubectl"
    kind_bin: str = "kind"
    docker_bin: str = "docker"
    make_bin: str = "make"
    kustomize_bin: str = "kustomize"
    kind_cluster: str = "kind"
    cert_manager_url: str = DEFAULT_CERT_MANAGER_URL
    cert_manager_timeout: str = "5m"
    install_cert_manager: bool = True
    poll_interval: float = 1.0
    poll_timeout: float = 60.0
    kubectl_timeout: float = 30.0
    go_env: dict[str, str] = field(default_factory=lambda: {"GO111MODULE": "on"})
    keep_workspace: bool = False
    log_level: str = "warning"

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict, repr=False)

    def get_source(self, key: str) -> str:
        """Get the source of a config value."""
        return self._sources.get(key, "default")

    def to_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in config_keys()}


def config_keys() -> list[str]:
    return [f.name for f in fields(HarnessConfig) if not f.name.startswith("_")]


def get_config_path() -> Path:
    """Get the default config file path.

    Returns:
        Path to ~/.scaffold-e2e/config.yaml
    """
    return Path.home() / ".scaffold-e2e" / "config.yaml"


def _coerce(key: str, value: Any) -> Any:
    """Convert a raw file or environment value to the field's type."""
    default = getattr(HarnessConfig(), key)
    try:
        if isinstance(default, bool):
            if isinstance(value, str):
                return value.strip().lower() in ("1", "true", "yes", "on")
            return bool(value)
        if isinstance(default, float):
            return float(value)
        if isinstance(default, dict):
            if isinstance(value, str):
                pairs = [item.split("=", 1) for item in value.split(",") if item.strip()]
                return {k.strip(): v.strip() for k, v in pairs}
            return {str(k): str(v) for k, v in dict(value).items()}
        return str(value)
    except (TypeError, ValueError) as e:
        raise SetupError(f"Invalid value for {key}: {value!r} ({e})") from e


def load_config(config_path: str | Path | None = None) -> HarnessConfig:
    """Load harness configuration.

    Precedence (highest to lowest):
    1. Environment variables (SCAFFOLD_E2E_<KEY>)
    2. Config file (explicit path, else ~/.scaffold-e2e/config.yaml)
    3. Defaults

    Args:
        config_path: Optional explicit config file. Must exist if given.

    Returns:
        HarnessConfig with values and sources

    Raises:
        SetupError: If the file is unreadable or holds invalid values.
    """
    config = HarnessConfig()
    keys = config_keys()
    sources: dict[str, str] = {key: "default" for key in keys}

    path = Path(config_path) if config_path else get_config_path()
    if config_path and not path.exists():
        raise SetupError(f"Config file not found: {path}")

    if path.exists():
        try:
            with open(path) as f:
                file_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise SetupError(f"Cannot read config file {path}: {e}") from e
        if not isinstance(file_config, dict):
            raise SetupError(f"Config file {path} must contain a mapping")

        for key, value in file_config.items():
            if key not in keys:
                raise SetupError(f"Unknown config key in {path}: {key}")
            setattr(config, key, _coerce(key, value))
            sources[key] = "config file"

    for key in keys:
        env_names = [ENV_PREFIX + key.upper()]
        if key in ENV_ALIASES:
            env_names.append(ENV_ALIASES[key])
        for env_name in env_names:
            if os.environ.get(env_name):
                setattr(config, key, _coerce(key, os.environ[env_name]))
                sources[key] = "environment"
                break

    if config.poll_interval <= 0 or config.poll_timeout < 0:
        raise SetupError("poll_interval must be positive and poll_timeout non-negative")
    if config.kubectl_timeout <= 0:
        raise SetupError("kubectl_timeout must be positive")

    config._sources = sources
    return config
