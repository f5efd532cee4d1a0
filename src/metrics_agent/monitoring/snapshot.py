"""Decoding of raw Docker stats payloads into typed snapshots."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from metrics_agent.core.constants import BYTES_PER_MB
from metrics_agent.exceptions import SnapshotDecodeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """One point-in-time read of a container's cumulative counters.

    The ``precpu_*`` counters are the runtime's previous reading of the same
    container. They are zero for single-shot (non-streaming) captures.
    """

    cpu_total_usage: int = 0
    cpu_system_usage: int = 0
    precpu_total_usage: int = 0
    precpu_system_usage: int = 0
    online_cpus: int = 0
    mem_usage: int = 0
    mem_limit: int = 0
    net_rx: int = 0
    net_tx: int = 0
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_previous(self) -> bool:
        """True if the payload carried a usable previous counter reading."""
        return self.precpu_total_usage > 0 and self.precpu_system_usage > 0

    @property
    def is_running(self) -> bool:
        return self.online_cpus > 0 and self.cpu_total_usage > 0

    @property
    def mem_usage_mb(self) -> float:
        return self.mem_usage / BYTES_PER_MB

    @property
    def net_rx_mb(self) -> float:
        return self.net_rx / BYTES_PER_MB

    @property
    def net_tx_mb(self) -> float:
        return self.net_tx / BYTES_PER_MB


def _counter(value: Any, name: str) -> int:
    """Coerce one counter field to a non-negative int; absent means zero."""
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SnapshotDecodeError(f"Counter {name} is not numeric: {value!r}")
    return max(0, int(value))


def _section(payload: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = payload.get(key) or {}
    if not isinstance(value, Mapping):
        raise SnapshotDecodeError(f"Section {key} is not an object")
    return value


def decode_stats(payload: Any, captured_at: datetime | None = None) -> Snapshot:
    """Normalize one raw Docker stats payload into a Snapshot.

    Missing sections decode to zero. Network totals are summed across all
    reported interfaces.

    Args:
        payload: Decoded JSON body of ``GET /containers/{id}/stats``
        captured_at: Capture time (defaults to now, UTC)

    Returns:
        Snapshot with cumulative counters

    Raises:
        SnapshotDecodeError: If the payload is not an object or a counter is not numeric
    """
    if not isinstance(payload, Mapping):
        raise SnapshotDecodeError(f"Stats payload is not an object: {type(payload).__name__}")

    cpu_stats = _section(payload, "cpu_stats")
    precpu_stats = _section(payload, "precpu_stats")
    cpu_usage = _section(cpu_stats, "cpu_usage")
    precpu_usage = _section(precpu_stats, "cpu_usage")
    memory_stats = _section(payload, "memory_stats")

    online_cpus = _counter(cpu_stats.get("online_cpus"), "online_cpus")
    if online_cpus == 0:
        # Older daemons only report the per-CPU breakdown
        online_cpus = len(cpu_usage.get("percpu_usage") or [])

    rx_bytes = 0
    tx_bytes = 0
    networks = _section(payload, "networks")
    for interface, net_stats in networks.items():
        if not isinstance(net_stats, Mapping):
            raise SnapshotDecodeError(f"Network entry {interface} is not an object")
        rx_bytes += _counter(net_stats.get("rx_bytes"), f"{interface}.rx_bytes")
        tx_bytes += _counter(net_stats.get("tx_bytes"), f"{interface}.tx_bytes")

    return Snapshot(
        cpu_total_usage=_counter(cpu_usage.get("total_usage"), "cpu_usage.total_usage"),
        cpu_system_usage=_counter(cpu_stats.get("system_cpu_usage"), "system_cpu_usage"),
        precpu_total_usage=_counter(precpu_usage.get("total_usage"), "precpu.total_usage"),
        precpu_system_usage=_counter(
            precpu_stats.get("system_cpu_usage"), "precpu.system_cpu_usage"
        ),
        online_cpus=online_cpus,
        mem_usage=_counter(memory_stats.get("usage"), "memory_stats.usage"),
        mem_limit=_counter(memory_stats.get("limit"), "memory_stats.limit"),
        net_rx=rx_bytes,
        net_tx=tx_bytes,
        captured_at=captured_at or datetime.now(timezone.utc),
    )
