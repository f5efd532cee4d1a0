"""Periodic background collection of container metrics.

The collector wakes on a fixed interval, samples every running container and
feeds the HistoryStore and RateCache. It runs in a daemon thread and ticks
once immediately at start so a fresh process has data promptly.

Failure handling:
- A failed container listing aborts that tick only.
- A failed, timed-out or malformed per-container capture skips that container.
- The timer keeps going regardless; the next tick is the retry.
- History points never move backwards in time: if the wall clock steps back,
  ticks reuse the previous tick's timestamp until the clock catches up.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone

from metrics_agent.core.constants import (
    DEFAULT_CALL_TIMEOUT_SECONDS,
    DEFAULT_INTERVAL_SECONDS,
    SHORT_ID_LENGTH,
)
from metrics_agent.core.schemas import MetricHistoryPoint, NetworkHistoryPoint
from metrics_agent.exceptions import MetricsAgentError
from metrics_agent.monitoring.history import HistoryStore
from metrics_agent.monitoring.rate import calculate_cpu_percent
from metrics_agent.monitoring.rate_cache import RateCache
from metrics_agent.monitoring.snapshot import Snapshot, decode_stats
from metrics_agent.runtime.base import ContainerRuntime

logger = logging.getLogger(__name__)


@dataclass
class TickResult:
    """Outcome of one sampling tick."""

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    collected: int = 0
    errors: int = 0
    aborted: bool = False
    duration_seconds: float = 0.0


class PeriodicCollector:
    """Fixed-interval sampler for all running containers.

    Example:
        ```python
        collector = PeriodicCollector(runtime, history, rate_cache, interval_seconds=300)
        collector.start()  # ticks immediately, then every 5 minutes
        ...
        collector.stop()
        ```
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        history: HistoryStore,
        rate_cache: RateCache,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        call_timeout_seconds: float = DEFAULT_CALL_TIMEOUT_SECONDS,
        max_workers: int = 4,
    ) -> None:
        """Initialize the collector.

        Args:
            runtime: Container runtime to sample
            history: Store receiving one point per series per container per tick
            rate_cache: Cache receiving the latest CPU percent per container
            interval_seconds: Time between tick starts
            call_timeout_seconds: Budget for one container's stats capture
            max_workers: Containers sampled concurrently within a tick
        """
        self._runtime = runtime
        self._history = history
        self._rate_cache = rate_cache
        self._interval_seconds = interval_seconds
        self._call_timeout_seconds = call_timeout_seconds
        self._max_workers = max(1, max_workers)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._last_tick: TickResult | None = None
        self._last_stamp: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def last_tick(self) -> TickResult | None:
        return self._last_tick

    def start(self) -> None:
        """Start the background sampling thread."""
        if self.is_running:
            logger.warning("Collector already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="metrics-collector", daemon=True)
        self._thread.start()
        logger.info(f"Started metrics collector (interval {self._interval_seconds}s)")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop sampling and wait for the thread to exit."""
        self._stop_event.set()

        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning(f"Collector thread did not exit within {timeout:.1f}s")
            self._thread = None

    def _run(self) -> None:
        while not self._stop_event.is_set():
            next_tick = time.monotonic() + self._interval_seconds
            try:
                self.collect_once()
            except Exception:
                # Keep the timer alive whatever a single tick does
                logger.exception("Metrics collection tick failed")

            if self._stop_event.wait(max(0.0, next_tick - time.monotonic())):
                break

    def collect_once(self) -> TickResult:
        """Run one sampling tick across all running containers.

        Returns:
            TickResult with collected/error counts
        """
        result = TickResult()
        start = time.monotonic()
        now = self._history_stamp(result.started_at)

        try:
            records = self._runtime.list_containers(include_stopped=False)
        except MetricsAgentError as e:
            logger.error(f"Failed to list containers for history: {e}")
            result.aborted = True
            result.duration_seconds = time.monotonic() - start
            self._last_tick = result
            return result

        container_ids = [r["Id"] for r in records if r.get("Id")]
        if container_ids:
            self._sample_all(container_ids, now, result)

        result.duration_seconds = time.monotonic() - start
        self._last_tick = result
        logger.info(
            f"Metrics collection complete: {result.collected} collected, "
            f"{result.errors} errors in {result.duration_seconds:.2f}s"
        )
        return result

    def _history_stamp(self, now: datetime) -> datetime:
        """Timestamp for this tick's history points, never older than the last tick's."""
        if self._last_stamp is not None and now < self._last_stamp:
            logger.warning(
                f"Wall clock moved back {(self._last_stamp - now).total_seconds():.0f}s; "
                "holding history timestamps at the previous tick"
            )
            now = self._last_stamp
        self._last_stamp = now
        return now

    def _sample_all(self, container_ids: list[str], now: datetime, result: TickResult) -> None:
        # Each call is bounded by the runtime's own timeout; the deadline covers
        # the whole fan-out in case a call ignores it.
        rounds = math.ceil(len(container_ids) / self._max_workers)
        deadline = self._call_timeout_seconds * (rounds + 1)

        executor = ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="metrics-sample"
        )
        futures: dict[Future[Snapshot], str] = {
            executor.submit(self._capture, container_id): container_id
            for container_id in container_ids
        }
        finished: set[Future[Snapshot]] = set()

        try:
            for future in as_completed(futures, timeout=deadline):
                finished.add(future)
                container_id = futures[future]
                try:
                    self._record(container_id, future.result(), now)
                    result.collected += 1
                except (MetricsAgentError, ValueError) as e:
                    logger.warning(f"Skipping {container_id[:SHORT_ID_LENGTH]}: {e}")
                    result.errors += 1
                except Exception:
                    logger.exception(f"Unexpected error sampling {container_id[:SHORT_ID_LENGTH]}")
                    result.errors += 1
        except TimeoutError:
            unfinished = [futures[f] for f in futures if f not in finished]
            logger.warning(
                f"{len(unfinished)} containers did not report within {deadline:.0f}s: "
                + ", ".join(cid[:SHORT_ID_LENGTH] for cid in unfinished)
            )
            result.errors += len(unfinished)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _capture(self, container_id: str) -> Snapshot:
        payload = self._runtime.stats(container_id, stream=True)
        return decode_stats(payload)

    def _record(self, container_id: str, snapshot: Snapshot, now: datetime) -> None:
        key = container_id[:SHORT_ID_LENGTH]
        cpu_percent = calculate_cpu_percent(snapshot)

        self._history.append(
            key,
            NetworkHistoryPoint(timestamp=now, rx_mb=snapshot.net_rx_mb, tx_mb=snapshot.net_tx_mb),
            MetricHistoryPoint(timestamp=now, value=cpu_percent),
            MetricHistoryPoint(timestamp=now, value=snapshot.mem_usage_mb),
        )
        self._rate_cache.set(key, cpu_percent, estimated=not snapshot.has_previous)
