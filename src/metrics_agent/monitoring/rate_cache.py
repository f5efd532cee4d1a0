"""Latest CPU rate per container, shared between collector and queries."""

from __future__ import annotations

from metrics_agent.monitoring.locks import ReadWriteLock


class RateCache:
    """Map of short container id -> most recent CPU percent.

    Written by the collector each tick and read by on-demand queries. Entries
    are never expired: a container that stops reporting keeps its last value.
    Each entry remembers whether the percent was estimated from a single
    reading rather than measured from two.
    """

    def __init__(self) -> None:
        self._rates: dict[str, tuple[float, bool]] = {}
        self._lock = ReadWriteLock()

    def set(self, key: str, percent: float, estimated: bool = False) -> None:
        if percent < 0:
            raise ValueError(f"CPU percent must be >= 0, got {percent}")
        with self._lock.write_locked():
            self._rates[key] = (percent, estimated)

    def get(self, key: str) -> tuple[float, bool]:
        """Return ``(percent, found)``; percent is 0.0 when not found."""
        percent, _, found = self.get_entry(key)
        return percent, found

    def get_entry(self, key: str) -> tuple[float, bool, bool]:
        """Return ``(percent, estimated, found)`` under a single read."""
        with self._lock.read_locked():
            if key in self._rates:
                percent, estimated = self._rates[key]
                return percent, estimated, True
            return 0.0, False, False

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._rates)
