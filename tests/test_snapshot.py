"""Tests for stats payload decoding."""

from datetime import datetime, timezone

import pytest

from conftest import make_stats_payload
from metrics_agent.exceptions import SnapshotDecodeError
from metrics_agent.monitoring.snapshot import decode_stats


class TestDecodeStats:
    """Tests for decode_stats."""

    def test_decodes_counters(self) -> None:
        """Test that all counters are carried over."""
        captured = datetime(2025, 1, 1, tzinfo=timezone.utc)
        snapshot = decode_stats(make_stats_payload(), captured_at=captured)

        assert snapshot.cpu_total_usage == 150
        assert snapshot.cpu_system_usage == 1100
        assert snapshot.precpu_total_usage == 100
        assert snapshot.precpu_system_usage == 1000
        assert snapshot.online_cpus == 4
        assert snapshot.mem_usage == 50_000_000
        assert snapshot.mem_limit == 100_000_000
        assert snapshot.captured_at == captured
        assert snapshot.has_previous

    def test_sums_network_interfaces(self) -> None:
        """Test that rx/tx are summed across interfaces."""
        payload = make_stats_payload(
            networks={
                "eth0": {"rx_bytes": 1024 * 1024, "tx_bytes": 100},
                "eth1": {"rx_bytes": 1024 * 1024, "tx_bytes": 200},
            }
        )
        snapshot = decode_stats(payload)

        assert snapshot.net_rx == 2 * 1024 * 1024
        assert snapshot.net_tx == 300
        assert snapshot.net_rx_mb == pytest.approx(2.0)

    def test_single_shot_payload_has_no_previous(self) -> None:
        """Non-streaming captures report zero previous counters."""
        payload = make_stats_payload(pre_total_usage=0, pre_system_usage=0)
        del payload["precpu_stats"]

        snapshot = decode_stats(payload)

        assert snapshot.precpu_total_usage == 0
        assert not snapshot.has_previous
        assert snapshot.is_running

    def test_online_cpus_falls_back_to_percpu(self) -> None:
        """Older daemons only report percpu_usage."""
        payload = make_stats_payload()
        del payload["cpu_stats"]["online_cpus"]
        payload["cpu_stats"]["cpu_usage"]["percpu_usage"] = [1, 2, 3]

        assert decode_stats(payload).online_cpus == 3

    def test_empty_payload_decodes_to_zero(self) -> None:
        """Stopped containers return mostly empty payloads."""
        snapshot = decode_stats({})

        assert snapshot.cpu_total_usage == 0
        assert snapshot.online_cpus == 0
        assert snapshot.net_rx == 0
        assert not snapshot.is_running

    def test_non_mapping_payload_rejected(self) -> None:
        with pytest.raises(SnapshotDecodeError):
            decode_stats(["not", "a", "dict"])

    def test_non_numeric_counter_rejected(self) -> None:
        """Test that a malformed counter raises instead of decoding garbage."""
        payload = make_stats_payload()
        payload["memory_stats"]["usage"] = "lots"

        with pytest.raises(SnapshotDecodeError):
            decode_stats(payload)
