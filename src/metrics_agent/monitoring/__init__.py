"""Monitoring module - sampling and in-memory aggregation of container metrics.

Provides:
- decode_stats / Snapshot: typed view of one raw stats payload
- calculate_cpu_percent / estimate_cpu_percent: CPU rate estimation
- HistoryStore / BoundedSeries: bounded per-container time series
- RateCache: latest CPU rate per container
- PeriodicCollector: background sampler feeding both stores
"""

from __future__ import annotations

from metrics_agent.monitoring.collector import PeriodicCollector, TickResult
from metrics_agent.monitoring.history import BoundedSeries, HistoryStore
from metrics_agent.monitoring.locks import ReadWriteLock
from metrics_agent.monitoring.rate import (
    calculate_cpu_percent,
    cpu_percent_from_deltas,
    estimate_cpu_percent,
    truncate_hundredths,
)
from metrics_agent.monitoring.rate_cache import RateCache
from metrics_agent.monitoring.snapshot import Snapshot, decode_stats

__all__ = [
    "BoundedSeries",
    "calculate_cpu_percent",
    "cpu_percent_from_deltas",
    "decode_stats",
    "estimate_cpu_percent",
    "HistoryStore",
    "PeriodicCollector",
    "RateCache",
    "ReadWriteLock",
    "Snapshot",
    "TickResult",
    "truncate_hundredths",
]
