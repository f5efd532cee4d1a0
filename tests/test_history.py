"""Tests for bounded series and the history store."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from metrics_agent.core.schemas import MetricHistoryPoint, NetworkHistoryPoint
from metrics_agent.monitoring.history import BoundedSeries, HistoryStore

START = datetime(2025, 1, 1, tzinfo=timezone.utc)


def points_at(i: int) -> tuple[NetworkHistoryPoint, MetricHistoryPoint, MetricHistoryPoint]:
    """One tick's worth of points, with values derived from the tick index."""
    ts = START + timedelta(minutes=5 * i)
    return (
        NetworkHistoryPoint(timestamp=ts, rx_mb=float(i), tx_mb=float(i) / 2),
        MetricHistoryPoint(timestamp=ts, value=float(i)),
        MetricHistoryPoint(timestamp=ts, value=float(i) * 10),
    )


class TestBoundedSeries:
    """Tests for BoundedSeries."""

    def test_keeps_newest_points(self) -> None:
        """289+ appends leave exactly the newest 288, oldest first."""
        series: BoundedSeries[MetricHistoryPoint] = BoundedSeries(288)
        for i in range(300):
            series.append(points_at(i)[1])

        values = [p.value for p in series]
        assert len(series) == 288
        assert values == [float(i) for i in range(12, 300)]

    def test_equal_timestamps_allowed(self) -> None:
        series: BoundedSeries[MetricHistoryPoint] = BoundedSeries(3)
        series.append(MetricHistoryPoint(timestamp=START, value=1.0))
        series.append(MetricHistoryPoint(timestamp=START, value=2.0))
        assert len(series) == 2

    def test_rejects_older_point(self) -> None:
        series: BoundedSeries[MetricHistoryPoint] = BoundedSeries(3)
        series.append(MetricHistoryPoint(timestamp=START, value=1.0))

        with pytest.raises(ValueError):
            series.append(MetricHistoryPoint(timestamp=START - timedelta(seconds=1), value=0.0))

    def test_invalid_capacity(self) -> None:
        with pytest.raises(ValueError):
            BoundedSeries(0)


class TestHistoryStore:
    """Tests for HistoryStore."""

    def test_append_and_read(self) -> None:
        store = HistoryStore(max_points=5)
        store.append("abcdef012345", *points_at(0))
        store.append("abcdef012345", *points_at(1))

        history = store.read_all("abcdef012345")

        assert history.container_id == "abcdef012345"
        assert [p.rx_mb for p in history.network] == [0.0, 1.0]
        assert [p.value for p in history.cpu] == [0.0, 1.0]
        assert [p.value for p in history.memory] == [0.0, 10.0]

    def test_each_series_is_capped(self) -> None:
        store = HistoryStore(max_points=288)
        for i in range(289):
            store.append("abcdef012345", *points_at(i))

        history = store.read_all("abcdef012345")
        for series in (history.network, history.cpu, history.memory):
            assert len(series) == 288
            assert series[0].timestamp == points_at(1)[0].timestamp
            assert series[-1].timestamp == points_at(288)[0].timestamp

    def test_out_of_order_append_changes_nothing(self) -> None:
        """A rejected tick must not leave the three series misaligned."""
        store = HistoryStore()
        store.append("abcdef012345", *points_at(5))
        network, cpu, _ = points_at(6)
        stale_memory = points_at(1)[2]

        with pytest.raises(ValueError):
            store.append("abcdef012345", network, cpu, stale_memory)

        history = store.read_all("abcdef012345")
        assert len(history.network) == len(history.cpu) == len(history.memory) == 1

    def test_read_returns_copy(self) -> None:
        store = HistoryStore()
        store.append("abcdef012345", *points_at(0))
        history = store.read_all("abcdef012345")
        store.append("abcdef012345", *points_at(1))

        assert len(history.cpu) == 1

    def test_resolve_exact_and_prefix(self) -> None:
        """Both the stored key and a shorter prefix find the same series."""
        store = HistoryStore()
        store.append("abcdef012345", *points_at(0))

        assert store.resolve("abcdef012345") == "abcdef012345"
        assert store.resolve("abcdef") == "abcdef012345"
        assert store.lookup("abcdef").cpu == store.lookup("abcdef012345").cpu

    def test_resolve_full_id(self) -> None:
        """A full 64-character id starts with the stored short key."""
        store = HistoryStore()
        store.append("abcdef012345", *points_at(0))

        assert store.resolve("abcdef0123456789" * 4) == "abcdef012345"

    def test_unknown_key_resolves_to_itself(self) -> None:
        """Unrelated queries degrade to empty series, not errors."""
        store = HistoryStore()
        store.append("abcdef012345", *points_at(0))

        assert store.resolve("zzz999") == "zzz999"
        history = store.lookup("zzz999")
        assert history.container_id == "zzz999"
        assert history.network == [] and history.cpu == [] and history.memory == []

    def test_empty_query_matches_nothing(self) -> None:
        store = HistoryStore()
        store.append("abcdef012345", *points_at(0))
        assert store.resolve("") == ""

    def test_keys(self) -> None:
        store = HistoryStore()
        store.append("aaaaaaaaaaaa", *points_at(0))
        store.append("bbbbbbbbbbbb", *points_at(0))
        assert sorted(store.keys()) == ["aaaaaaaaaaaa", "bbbbbbbbbbbb"]
        assert len(store) == 2

    def test_concurrent_readers_see_aligned_series(self) -> None:
        """Readers racing a writer never observe a partially appended tick."""
        store = HistoryStore(max_points=50)
        stop = threading.Event()
        failures: list[str] = []

        def writer() -> None:
            for i in range(2000):
                store.append("abcdef012345", *points_at(i))
            stop.set()

        def reader() -> None:
            while not stop.is_set():
                history = store.lookup("abcdef")
                if not (len(history.network) == len(history.cpu) == len(history.memory)):
                    failures.append("length mismatch")
                    return
                for net, cpu, mem in zip(history.network, history.cpu, history.memory):
                    if not (net.timestamp == cpu.timestamp == mem.timestamp):
                        failures.append("timestamp mismatch")
                        return

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for t in readers:
            t.start()
        write_thread = threading.Thread(target=writer)
        write_thread.start()

        write_thread.join(timeout=30)
        stop.set()
        for t in readers:
            t.join(timeout=5)

        assert failures == []
        assert len(store.read_all("abcdef012345").cpu) == 50
