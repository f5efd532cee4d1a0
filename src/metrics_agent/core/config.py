"""Configuration loading utilities.

Supports YAML and JSON configuration files with schema validation, plus an
environment overlay for container deployments.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from metrics_agent.core.schemas import AgentConfig

# Environment variable -> AgentConfig field. Earlier entries win for the same field.
ENV_OVERRIDES: tuple[tuple[str, str], ...] = (
    ("METRICS_AGENT_TOKEN", "auth_token"),
    ("PORT", "port"),
    ("METRICS_AGENT_PORT", "port"),
    ("TRAEFIK_LOG_PATH", "access_log_path"),
    ("DOCKER_HOST", "docker_host"),
    ("METRICS_AGENT_INTERVAL", "interval_seconds"),
)


def load_config(path: Path | str) -> AgentConfig:
    """Load and validate an agent configuration file.

    Args:
        path: Path to YAML or JSON configuration file

    Returns:
        Validated AgentConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported
        pydantic.ValidationError: If config is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()
    with open(path, encoding="utf-8") as f:
        if suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        elif suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config format: {suffix}. Use .yaml, .yml, or .json")

    return AgentConfig.model_validate(data or {})


def config_from_env(
    base: AgentConfig | None = None,
    environ: Mapping[str, str] | None = None,
) -> AgentConfig:
    """Overlay environment variables onto a configuration.

    Args:
        base: Configuration to start from (defaults to AgentConfig())
        environ: Environment mapping (defaults to os.environ)

    Returns:
        A new, re-validated AgentConfig
    """
    environ = os.environ if environ is None else environ
    data: dict[str, Any] = (base or AgentConfig()).model_dump()

    applied: set[str] = set()
    for env_name, field in ENV_OVERRIDES:
        value = environ.get(env_name)
        if value and field not in applied:
            data[field] = value
            applied.add(field)

    return AgentConfig.model_validate(data)
