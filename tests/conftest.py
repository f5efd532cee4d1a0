"""Shared fixtures: raw Docker stats payloads and a fake runtime."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest

from metrics_agent.runtime.base import ContainerRuntime

FULL_ID = "abcdef0123456789abcdef0123456789abcdef0123456789abcdef0123456789"


def make_stats_payload(
    total_usage: int = 150,
    system_usage: int = 1100,
    pre_total_usage: int = 100,
    pre_system_usage: int = 1000,
    online_cpus: int = 4,
    memory_usage: int = 50_000_000,
    memory_limit: int = 100_000_000,
    networks: dict[str, dict[str, int]] | None = None,
) -> dict[str, Any]:
    """Create a Docker stats response."""
    if networks is None:
        networks = {"eth0": {"rx_bytes": 1024 * 1024, "tx_bytes": 2 * 1024 * 1024}}
    return {
        "cpu_stats": {
            "cpu_usage": {"total_usage": total_usage},
            "system_cpu_usage": system_usage,
            "online_cpus": online_cpus,
        },
        "precpu_stats": {
            "cpu_usage": {"total_usage": pre_total_usage},
            "system_cpu_usage": pre_system_usage,
        },
        "memory_stats": {"usage": memory_usage, "limit": memory_limit},
        "networks": networks,
    }


def make_inspect(
    container_id: str = FULL_ID,
    name: str = "/web-1",
    nano_cpus: int = 0,
    memory: int = 0,
    started_at: str = "2025-12-29T14:00:31.427569156Z",
) -> dict[str, Any]:
    """Create a Docker inspect document."""
    return {
        "Id": container_id,
        "Name": name,
        "State": {"Running": True, "StartedAt": started_at},
        "HostConfig": {"NanoCpus": nano_cpus, "Memory": memory},
    }


def make_record(container_id: str, name: str, state: str = "running") -> dict[str, Any]:
    """Create one container listing record."""
    return {"Id": container_id, "Names": [f"/{name}"], "State": state, "Created": 1735480800}


@pytest.fixture
def stats_payload() -> Callable[..., dict[str, Any]]:
    return make_stats_payload


@pytest.fixture
def runtime() -> MagicMock:
    """Runtime with one running container ``web-1``."""
    fake = MagicMock(spec=ContainerRuntime)
    fake.list_containers.return_value = [make_record(FULL_ID, "web-1")]
    fake.inspect.return_value = make_inspect()
    fake.stats.return_value = make_stats_payload()
    return fake
