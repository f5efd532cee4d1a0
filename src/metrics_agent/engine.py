"""Query engine combining live runtime reads with collected history.

The engine owns the process-wide HistoryStore and RateCache and the
PeriodicCollector that fills them. Queries read both stores and, for live
single-container views, make their own runtime calls.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from metrics_agent.access_log import count_requests
from metrics_agent.core.constants import BYTES_PER_MB, NANO_CPUS_PER_CORE, SHORT_ID_LENGTH
from metrics_agent.core.schemas import (
    AgentConfig,
    AllStats,
    ContainerHistory,
    ContainerInfo,
    ContainerOverview,
    ContainerStats,
    CPUStats,
    MemoryStats,
    NetworkStats,
    RequestStats,
    ResourceLimits,
)
from metrics_agent.exceptions import MetricsAgentError
from metrics_agent.monitoring.collector import PeriodicCollector
from metrics_agent.monitoring.history import HistoryStore
from metrics_agent.monitoring.rate import calculate_cpu_percent
from metrics_agent.monitoring.rate_cache import RateCache
from metrics_agent.monitoring.snapshot import decode_stats
from metrics_agent.runtime.base import ContainerRuntime
from metrics_agent.utils.timestamps import from_unix, parse_runtime_timestamp

logger = logging.getLogger(__name__)


def short_id(container_id: str) -> str:
    return container_id[:SHORT_ID_LENGTH]


def container_name(record: dict[str, Any]) -> str:
    """Primary name of a listing record, without Docker's leading slash."""
    names = record.get("Names") or []
    return names[0].removeprefix("/") if names else ""


def matches_filter(name: str, name_filter: str | None) -> bool:
    """Case-sensitive substring match; no filter matches everything."""
    return not name_filter or name_filter in name


def memory_percent(usage_bytes: int, limit_bytes: int) -> float:
    if limit_bytes <= 0:
        return 0.0
    return usage_bytes / limit_bytes * 100


def limits_to_update(limits: ResourceLimits) -> dict[str, int]:
    """Translate requested limits into runtime update arguments.

    CPU cores become nano-CPUs; memory MB becomes bytes and is mirrored onto
    the swap limit so no swap beyond the memory limit is allowed. Unset or
    zero fields are omitted.
    """
    update: dict[str, int] = {}
    if limits.cpu_cores:
        update["nano_cpus"] = int(limits.cpu_cores * NANO_CPUS_PER_CORE)
    if limits.memory_mb:
        memory_bytes = limits.memory_mb * BYTES_PER_MB
        update["memory_bytes"] = memory_bytes
        update["memory_swap_bytes"] = memory_bytes
    return update


class MetricsEngine:
    """Container metrics queries backed by a background collector.

    Example:
        ```python
        engine = MetricsEngine(DockerRuntime.connect(), AgentConfig())
        engine.start()
        stats = engine.current_stats("abcdef012345")
        history = engine.history("abcdef")
        engine.stop()
        ```
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        config: AgentConfig | None = None,
        history_store: HistoryStore | None = None,
        rate_cache: RateCache | None = None,
    ) -> None:
        self.config = config or AgentConfig()
        self.runtime = runtime
        self.history_store = history_store or HistoryStore(self.config.max_points)
        self.rate_cache = rate_cache or RateCache()
        self.collector = PeriodicCollector(
            runtime,
            self.history_store,
            self.rate_cache,
            interval_seconds=self.config.interval_seconds,
            call_timeout_seconds=self.config.call_timeout_seconds,
            max_workers=self.config.max_workers,
        )

    def start(self) -> None:
        self.collector.start()

    def stop(self) -> None:
        self.collector.stop()

    def list_containers(self, name_filter: str | None = None) -> list[ContainerInfo]:
        """List all containers, including stopped ones.

        Args:
            name_filter: Optional case-sensitive substring of the container name

        Raises:
            RuntimeUnavailableError: If the runtime listing fails
        """
        result: list[ContainerInfo] = []
        for record in self.runtime.list_containers(include_stopped=True):
            name = container_name(record)
            if not matches_filter(name, name_filter):
                continue

            started_at = None
            try:
                inspect = self.runtime.inspect(record["Id"])
                started_at = parse_runtime_timestamp((inspect.get("State") or {}).get("StartedAt"))
            except MetricsAgentError as e:
                logger.debug(f"Inspect failed for {short_id(record['Id'])}: {e}")

            result.append(
                ContainerInfo(
                    id=short_id(record["Id"]),
                    name=name,
                    status=record.get("State") or "",
                    created=from_unix(record.get("Created")),
                    started_at=started_at,
                )
            )
        return result

    def current_stats(self, container_id: str) -> ContainerStats:
        """Live stats for one container.

        Memory and network come from a fresh single-shot snapshot. CPU comes
        from the collector's cached rate when available; otherwise it is
        derived from the snapshot and flagged as estimated when the snapshot
        had no previous reading.

        Raises:
            ContainerNotFoundError: If the runtime does not know the container
            RuntimeUnavailableError: If inspect or stats fail
            SnapshotDecodeError: If the stats payload is malformed
        """
        inspect = self.runtime.inspect(container_id)
        snapshot = decode_stats(self.runtime.stats(container_id, stream=False))

        key = self.history_store.resolve(short_id(inspect.get("Id") or container_id))
        cached, cached_estimated, found = self.rate_cache.get_entry(key)
        if found:
            cpu_percent, estimated = cached, cached_estimated
        else:
            cpu_percent = calculate_cpu_percent(snapshot)
            estimated = not snapshot.has_previous

        host_config = inspect.get("HostConfig") or {}
        nano_cpus = host_config.get("NanoCpus") or 0
        if nano_cpus > 0:
            cpu_limit = nano_cpus / NANO_CPUS_PER_CORE
        else:
            cpu_limit = float(snapshot.online_cpus)

        mem_limit = host_config.get("Memory") or 0
        if mem_limit <= 0:
            mem_limit = snapshot.mem_limit

        return ContainerStats(
            container_id=key,
            container_name=(inspect.get("Name") or "").removeprefix("/"),
            timestamp=datetime.now(timezone.utc),
            started_at=parse_runtime_timestamp((inspect.get("State") or {}).get("StartedAt")),
            cpu=CPUStats(
                usage_percent=cpu_percent,
                cores=cpu_percent / 100 * cpu_limit,
                limit_cores=cpu_limit,
                estimated=estimated,
            ),
            memory=MemoryStats(
                usage_bytes=snapshot.mem_usage,
                usage_mb=snapshot.mem_usage / BYTES_PER_MB,
                limit_bytes=mem_limit,
                limit_mb=mem_limit / BYTES_PER_MB,
                usage_percent=memory_percent(snapshot.mem_usage, mem_limit),
            ),
            network=NetworkStats(
                rx_bytes=snapshot.net_rx,
                rx_mb=snapshot.net_rx_mb,
                tx_bytes=snapshot.net_tx,
                tx_mb=snapshot.net_tx_mb,
            ),
        )

    def history(self, container_id: str) -> ContainerHistory:
        """Stored series for a full or short container id (empty if unknown)."""
        return self.history_store.lookup(container_id)

    def all_stats(self, name_filter: str | None = None) -> AllStats:
        """Live stats for all running containers; failing containers are omitted.

        Raises:
            RuntimeUnavailableError: If the runtime listing fails
        """
        containers: list[ContainerStats] = []
        for record in self.runtime.list_containers(include_stopped=False):
            if not matches_filter(container_name(record), name_filter):
                continue
            try:
                containers.append(self.current_stats(record["Id"]))
            except MetricsAgentError as e:
                logger.debug(f"Omitting {short_id(record['Id'])} from stats: {e}")

        return AllStats(timestamp=datetime.now(timezone.utc), containers=containers)

    def set_limits(self, container_id: str, limits: ResourceLimits) -> None:
        """Apply resource limits once; no retry.

        Raises:
            LimitsUpdateError: With the runtime's message if the update is rejected
        """
        self.runtime.update(container_id, **limits_to_update(limits))

    def request_stats(self, domain: str) -> RequestStats:
        """Access-log request counts; an unreadable log counts as zero."""
        try:
            return count_requests(self.config.access_log_path, domain)
        except OSError as e:
            logger.debug(f"Access log unavailable ({e}); reporting zero requests for {domain}")
            return RequestStats(domain=domain)

    def container_overview(
        self, container_id: str, domain: str | None = None
    ) -> ContainerOverview:
        """Stats, history and (when a domain is given) request counts together.

        Raises:
            Same as current_stats()
        """
        stats = self.current_stats(container_id)
        history = self.history_store.lookup(stats.container_id)

        requests = None
        if domain:
            try:
                requests = count_requests(self.config.access_log_path, domain)
            except OSError as e:
                logger.debug(f"Access log unavailable: {e}")

        return ContainerOverview(
            container_id=stats.container_id,
            stats=stats,
            history=history,
            requests=requests,
        )
