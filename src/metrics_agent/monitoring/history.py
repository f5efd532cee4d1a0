"""Bounded in-memory history of per-container metrics.

Each container (keyed by its short id) owns three time-aligned series:
network totals, CPU percent and memory usage. Every series keeps at most
``max_points`` entries; older points are evicted first.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, Protocol, TypeVar

from metrics_agent.core.constants import MAX_HISTORY_POINTS
from metrics_agent.core.schemas import ContainerHistory, MetricHistoryPoint, NetworkHistoryPoint
from metrics_agent.monitoring.locks import ReadWriteLock

logger = logging.getLogger(__name__)


class _Timestamped(Protocol):
    timestamp: datetime


PointT = TypeVar("PointT", bound=_Timestamped)


class BoundedSeries(Generic[PointT]):
    """Fixed-capacity, FIFO-evicting, chronologically ordered series.

    Not thread-safe on its own; HistoryStore serializes access.
    """

    def __init__(self, max_points: int = MAX_HISTORY_POINTS) -> None:
        if max_points < 1:
            raise ValueError(f"max_points must be >= 1, got {max_points}")
        self._points: deque[PointT] = deque(maxlen=max_points)

    @property
    def max_points(self) -> int:
        return self._points.maxlen or 0

    @property
    def last_timestamp(self) -> datetime | None:
        return self._points[-1].timestamp if self._points else None

    def accepts(self, point: PointT) -> bool:
        """True if appending ``point`` keeps timestamps non-decreasing."""
        last = self.last_timestamp
        return last is None or point.timestamp >= last

    def append(self, point: PointT) -> None:
        if not self.accepts(point):
            raise ValueError(
                f"Point at {point.timestamp.isoformat()} is older than "
                f"last point at {self.last_timestamp.isoformat()}"  # type: ignore[union-attr]
            )
        self._points.append(point)

    def to_list(self) -> list[PointT]:
        return list(self._points)

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[PointT]:
        return iter(self._points)


@dataclass
class _ContainerSeries:
    network: BoundedSeries[NetworkHistoryPoint]
    cpu: BoundedSeries[MetricHistoryPoint]
    memory: BoundedSeries[MetricHistoryPoint]


class HistoryStore:
    """Thread-safe map of short container id -> bounded series.

    Appends for one tick and container happen under a single exclusive section
    so the three series stay time-aligned. Reads share the lock.

    Example:
        ```python
        store = HistoryStore(max_points=288)
        store.append("abcdef012345", network_point, cpu_point, memory_point)
        history = store.lookup("abcdef")  # prefix of the stored key
        ```
    """

    def __init__(self, max_points: int = MAX_HISTORY_POINTS) -> None:
        if max_points < 1:
            raise ValueError(f"max_points must be >= 1, got {max_points}")
        self._max_points = max_points
        self._series: dict[str, _ContainerSeries] = {}
        self._lock = ReadWriteLock()

    @property
    def max_points(self) -> int:
        return self._max_points

    def append(
        self,
        key: str,
        network: NetworkHistoryPoint,
        cpu: MetricHistoryPoint,
        memory: MetricHistoryPoint,
    ) -> None:
        """Append one tick's points for a container.

        Raises:
            ValueError: If any point is older than its series' last point.
                Nothing is appended in that case.
        """
        with self._lock.write_locked():
            series = self._series.get(key)
            if series is None:
                series = _ContainerSeries(
                    network=BoundedSeries(self._max_points),
                    cpu=BoundedSeries(self._max_points),
                    memory=BoundedSeries(self._max_points),
                )
                self._series[key] = series

            if not (
                series.network.accepts(network)
                and series.cpu.accepts(cpu)
                and series.memory.accepts(memory)
            ):
                raise ValueError(f"Out-of-order history point for {key}")

            series.network.append(network)
            series.cpu.append(cpu)
            series.memory.append(memory)

    def _resolve_locked(self, query_key: str) -> str:
        if not query_key:
            return query_key
        for stored_key in self._series:
            if stored_key.startswith(query_key) or query_key.startswith(stored_key):
                return stored_key
        return query_key

    def resolve(self, query_key: str) -> str:
        """Map a full or short container id onto a stored key.

        A stored key matches when either string is a prefix of the other. The
        first match wins; with several candidates the choice is unspecified.
        Without a match the query is returned unchanged.
        """
        with self._lock.read_locked():
            return self._resolve_locked(query_key)

    def _read_locked(self, key: str) -> ContainerHistory:
        series = self._series.get(key)
        if series is None:
            return ContainerHistory(container_id=key)
        return ContainerHistory(
            container_id=key,
            network=series.network.to_list(),
            cpu=series.cpu.to_list(),
            memory=series.memory.to_list(),
        )

    def read_all(self, key: str) -> ContainerHistory:
        """Copy of the three series stored under exactly ``key`` (empty if unknown)."""
        with self._lock.read_locked():
            return self._read_locked(key)

    def lookup(self, query_key: str) -> ContainerHistory:
        """Resolve ``query_key`` and read its series in one consistent view."""
        with self._lock.read_locked():
            return self._read_locked(self._resolve_locked(query_key))

    def keys(self) -> list[str]:
        with self._lock.read_locked():
            return list(self._series)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._series)
