"""CPU utilization estimation from cumulative counters.

Two modes:

- Delta mode: two counter readings of the same container (the payload's
  current and previous samples) give a true utilization.
- Fallback mode: a single reading cannot give a rate. A rate cached by the
  background collector is reused; without one a running container reports
  RUNNING_CPU_SENTINEL and anything else reports 0.

Functions:
    truncate_hundredths: Drop digits past the second decimal
    cpu_percent_from_deltas: Delta-mode formula
    calculate_cpu_percent: Delta mode with automatic fallback
    estimate_cpu_percent: Fallback mode
"""

from __future__ import annotations

import math

from metrics_agent.core.constants import RUNNING_CPU_SENTINEL
from metrics_agent.monitoring.snapshot import Snapshot


def truncate_hundredths(value: float) -> float:
    """Truncate (not round) to two decimal places."""
    return int(value * 100) / 100


def cpu_percent_from_deltas(cpu_delta: float, system_delta: float, online_cpus: int) -> float:
    """Compute CPU percent from counter deltas.

    Args:
        cpu_delta: Change in the container's total CPU usage
        system_delta: Change in the host's total CPU usage
        online_cpus: Number of CPUs visible to the container

    Returns:
        Utilization percent truncated to hundredths (100 = one full core),
        0.0 unless both deltas are strictly positive
    """
    if cpu_delta <= 0 or system_delta <= 0 or online_cpus <= 0:
        return 0.0

    percent = (cpu_delta / system_delta) * online_cpus * 100.0
    if not math.isfinite(percent):
        return 0.0
    return truncate_hundredths(percent)


def estimate_cpu_percent(snapshot: Snapshot, cached: float | None = None) -> float:
    """Fallback-mode estimate for a single reading.

    Args:
        snapshot: The only available reading
        cached: Rate previously stored for this container, if any

    Returns:
        ``cached`` when present, else the running sentinel or 0.0
    """
    if cached is not None:
        return cached
    if snapshot.is_running:
        return RUNNING_CPU_SENTINEL
    return 0.0


def calculate_cpu_percent(snapshot: Snapshot) -> float:
    """Delta-mode CPU percent, falling back when no previous reading exists."""
    if not snapshot.has_previous:
        return estimate_cpu_percent(snapshot)

    return cpu_percent_from_deltas(
        snapshot.cpu_total_usage - snapshot.precpu_total_usage,
        snapshot.cpu_system_usage - snapshot.precpu_system_usage,
        snapshot.online_cpus,
    )
