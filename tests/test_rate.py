"""Tests for CPU rate estimation."""

import pytest

from conftest import make_stats_payload
from metrics_agent.core.constants import RUNNING_CPU_SENTINEL
from metrics_agent.monitoring.rate import (
    calculate_cpu_percent,
    cpu_percent_from_deltas,
    estimate_cpu_percent,
    truncate_hundredths,
)
from metrics_agent.monitoring.snapshot import Snapshot, decode_stats


class TestDeltaMode:
    """Tests for two-reading CPU percent."""

    def test_reference_example(self) -> None:
        """cpu [100,150], system [1000,1100], 4 CPUs -> 200%."""
        snapshot = decode_stats(make_stats_payload())
        assert calculate_cpu_percent(snapshot) == 200.00

    def test_truncates_instead_of_rounding(self) -> None:
        """12.349 must become 12.34, not 12.35."""
        assert cpu_percent_from_deltas(12349, 100000, 1) == 12.34
        assert truncate_hundredths(99.999) == 99.99

    @pytest.mark.parametrize(
        ("cpu_delta", "system_delta"),
        [(0, 100), (50, 0), (-50, 100), (50, -100), (0, 0)],
    )
    def test_non_positive_deltas_yield_zero(self, cpu_delta: int, system_delta: int) -> None:
        """Counter resets or idle intervals never produce negative or infinite rates."""
        assert cpu_percent_from_deltas(cpu_delta, system_delta, 4) == 0.0

    def test_counter_reset_in_payload(self) -> None:
        """A container restart makes the current counter smaller than the previous one."""
        payload = make_stats_payload(total_usage=10, pre_total_usage=100)
        assert calculate_cpu_percent(decode_stats(payload)) == 0.0


class TestFallbackMode:
    """Tests for single-reading CPU estimates."""

    def test_reuses_cached_rate(self) -> None:
        snapshot = Snapshot(cpu_total_usage=500, online_cpus=2)
        assert estimate_cpu_percent(snapshot, cached=42.5) == 42.5

    def test_cached_zero_is_still_a_cached_rate(self) -> None:
        snapshot = Snapshot(cpu_total_usage=500, online_cpus=2)
        assert estimate_cpu_percent(snapshot, cached=0.0) == 0.0

    def test_running_container_gets_sentinel(self) -> None:
        snapshot = Snapshot(cpu_total_usage=500, online_cpus=2)
        assert estimate_cpu_percent(snapshot) == RUNNING_CPU_SENTINEL

    def test_idle_container_gets_zero(self) -> None:
        assert estimate_cpu_percent(Snapshot(cpu_total_usage=0, online_cpus=2)) == 0.0
        assert estimate_cpu_percent(Snapshot(cpu_total_usage=500, online_cpus=0)) == 0.0

    def test_missing_previous_switches_to_fallback(self) -> None:
        """Without previous counters the delta formula is not attempted."""
        payload = make_stats_payload(pre_total_usage=0, pre_system_usage=0)
        assert calculate_cpu_percent(decode_stats(payload)) == RUNNING_CPU_SENTINEL
