"""Tests for the name-indexed snapshot projection."""

from datetime import datetime, timedelta, timezone

import pytest

from metrics_exposition.hashed import HashedSnapshot
from metrics_exposition.snapshot import Counter, Gauge, Histogram, HistogramValue, Snapshot, SnapshotV1, SnapshotV2

CAPTURED_AT = datetime(2024, 1, 1, 0, 0, 0, 1, tzinfo=timezone.utc)
CAPTURED_AT_NS = 1704067200 * 1_000_000_000 + 1_000


def test_timestamp_and_duration_in_nanoseconds():
    snapshot = Snapshot(SnapshotV2(systemtime=CAPTURED_AT, duration=timedelta(seconds=5, microseconds=3)))

    hashed = HashedSnapshot.from_snapshot(snapshot)

    assert hashed.timestamp == CAPTURED_AT_NS
    assert hashed.duration == 5_000_003_000


def test_v1_has_no_duration():
    hashed = HashedSnapshot.from_snapshot(Snapshot(SnapshotV1(systemtime=CAPTURED_AT)))
    assert hashed.duration is None


def test_records_keyed_by_canonical_name():
    snapshot = Snapshot(
        SnapshotV2(
            systemtime=CAPTURED_AT,
            duration=timedelta(seconds=1),
            counters=[
                Counter(name="cpu.usage", value=7),
                Counter(name="m1", value=3, metadata={"metric": "cpu", "op": "busy", "state": "user", "id": "0"}),
                Counter(name="m1", value=4, metadata={"metric": "cpu", "op": "busy", "state": "user", "id": "1"}),
            ],
            gauges=[Gauge(name="m2", value=-1, metadata={"metric": "net", "direction": "rx", "iface": "eth0"})],
            histograms=[
                Histogram(
                    name="m3",
                    value=HistogramValue(bounds=[1.0], counts=[1, 0]),
                    metadata={"metric": "latency", "unit": "ns", "grouping_power": "7"},
                )
            ],
        )
    )

    hashed = HashedSnapshot.from_snapshot(snapshot)

    assert set(hashed.counters) == {"cpu.usage", "cpu/busy/user/0", "cpu/busy/user/1"}
    assert hashed.counters["cpu/busy/user/1"].value == 4
    assert hashed.gauges["net/rx/eth0"].value == -1
    assert hashed.histograms["latency"].value.count == 1


def test_collision_last_wins():
    """Two counters with the same canonical name leave only the later one."""
    metadata = {"metric": "cpu", "state": "user"}
    snapshot = Snapshot(
        SnapshotV1(
            systemtime=CAPTURED_AT,
            counters=[
                Counter(name="first", value=1, metadata=metadata),
                Counter(name="second", value=2, metadata=metadata),
            ],
        )
    )

    hashed = HashedSnapshot.from_snapshot(snapshot)

    assert len(hashed.counters) == 1
    assert hashed.counters["cpu/user"].name == "second"
    assert hashed.counters["cpu/user"].value == 2


def test_projection_drains_source():
    snapshot = Snapshot(
        SnapshotV2(
            systemtime=CAPTURED_AT,
            duration=timedelta(seconds=1),
            counters=[Counter(name="c", value=1)],
            gauges=[Gauge(name="g", value=1)],
        )
    )

    HashedSnapshot.from_snapshot(snapshot)

    assert snapshot.counters() == []
    assert snapshot.gauges() == []
    assert snapshot.histograms() == []
    # Time fields are not drained
    assert snapshot.systemtime() == CAPTURED_AT


def test_pre_epoch_clock_is_fatal():
    """A clock before 1970 must not produce a negative or wrapped timestamp."""
    snapshot = Snapshot(SnapshotV1(systemtime=datetime(1969, 12, 31, 23, 59, 59, tzinfo=timezone.utc)))

    with pytest.raises(RuntimeError, match="earlier than 1970"):
        HashedSnapshot.from_snapshot(snapshot)


def test_epoch_itself_is_zero():
    hashed = HashedSnapshot.from_snapshot(Snapshot(SnapshotV1(systemtime=datetime(1970, 1, 1, tzinfo=timezone.utc))))
    assert hashed.timestamp == 0
