from metrics_exposition.encoding import from_json, from_msgpack, to_json, to_msgpack
from metrics_exposition.exceptions import DeserializationError, ExpositionError, SerializationError
from metrics_exposition.hashed import HashedSnapshot
from metrics_exposition.naming import IGNORED_KEYS, ORDERED_KEYS, canonicalize_metric_name
from metrics_exposition.snapshot import (
    Counter,
    Gauge,
    Histogram,
    HistogramValue,
    Snapshot,
    SnapshotV1,
    SnapshotV2,
)
from metrics_exposition.snapshotter import Snapshotter

__all__ = [
    "Counter",
    "DeserializationError",
    "ExpositionError",
    "Gauge",
    "HashedSnapshot",
    "Histogram",
    "HistogramValue",
    "IGNORED_KEYS",
    "ORDERED_KEYS",
    "SerializationError",
    "Snapshot",
    "SnapshotV1",
    "SnapshotV2",
    "Snapshotter",
    "canonicalize_metric_name",
    "from_json",
    "from_msgpack",
    "to_json",
    "to_msgpack",
]
