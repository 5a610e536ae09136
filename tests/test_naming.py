"""Tests for canonical metric naming."""

import pytest

from metrics_exposition.naming import IGNORED_KEYS, ORDERED_KEYS, canonicalize_metric_name


def test_legacy_name_returned_unchanged():
    assert canonicalize_metric_name("cpu.usage", {}) == "cpu.usage"


def test_legacy_name_ignores_other_metadata():
    """Without a `metric` key, metadata never changes the name."""
    assert canonicalize_metric_name("cpu.usage", {"op": "busy", "id": "3"}) == "cpu.usage"


def test_tagged_full_example():
    metadata = {"metric": "cpu", "op": "busy", "state": "user", "id": "0"}
    assert canonicalize_metric_name("m123", metadata) == "cpu/busy/user/0"


def test_tagged_with_remaining_key():
    """`direction` is a dimension, `unit` is ignored, `iface` is appended."""
    metadata = {"metric": "net", "direction": "rx", "unit": "bytes", "iface": "eth0"}
    assert canonicalize_metric_name("m1", metadata) == "net/rx/eth0"


def test_metric_only():
    assert canonicalize_metric_name("opaque", {"metric": "syscall"}) == "syscall"


def test_ignored_keys_are_dropped():
    metadata = {
        "metric": "latency",
        "unit": "nanoseconds",
        "grouping_power": "7",
        "max_value_power": "64",
    }
    assert canonicalize_metric_name("h1", metadata) == "latency"


def test_dimension_order_is_fixed():
    """Dimensions read name, op, state, direction regardless of insertion order."""
    metadata = {"direction": "tx", "state": "s", "op": "o", "name": "n", "metric": "m"}
    assert canonicalize_metric_name("x", metadata) == "m/n/o/s/tx"


def test_remaining_keys_sorted_by_key():
    metadata = {"metric": "gpu", "zone": "z", "bus": "b", "model": "m"}
    assert canonicalize_metric_name("x", metadata) == "gpu/b/m/z"


def test_id_is_appended_last():
    """`id` goes after remaining keys even when they sort after it."""
    metadata = {"metric": "cpu", "id": "7", "socket": "1", "op": "idle"}
    assert canonicalize_metric_name("x", metadata) == "cpu/idle/1/7"


@pytest.mark.parametrize(
    "items",
    [
        [("metric", "disk"), ("op", "read"), ("device", "sda"), ("id", "2"), ("unit", "bytes")],
        [("unit", "bytes"), ("id", "2"), ("device", "sda"), ("op", "read"), ("metric", "disk")],
        [("device", "sda"), ("metric", "disk"), ("unit", "bytes"), ("op", "read"), ("id", "2")],
    ],
)
def test_deterministic_across_insertion_order(items):
    assert canonicalize_metric_name("any", dict(items)) == "disk/read/sda/2"


def test_distinct_raw_names_alias():
    """Same identifying metadata collides by design."""
    metadata = {"metric": "cpu", "state": "user", "id": "0"}
    assert canonicalize_metric_name("a", metadata) == canonicalize_metric_name("b", metadata)


def test_key_constants():
    assert ORDERED_KEYS == ("name", "op", "state", "direction")
    assert IGNORED_KEYS == {
        "name",
        "op",
        "state",
        "direction",
        "metric",
        "unit",
        "grouping_power",
        "max_value_power",
        "id",
    }
