"""Self-instrumentation metrics.

Module-level constants on a dedicated CollectorRegistry so snapshots of the
host registry only contain host metrics.
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge

PREFIX = "exposition_"

EXPOSITION_REGISTRY = CollectorRegistry()

SNAPSHOTS_TOTAL = Counter(
    f"{PREFIX}snapshots_total",
    "Total snapshots assembled",
    registry=EXPOSITION_REGISTRY,
)

SNAPSHOT_RECORDS = Gauge(
    f"{PREFIX}snapshot_records",
    "Number of records in the last snapshot",
    labelnames=["kind"],
    registry=EXPOSITION_REGISTRY,
)

SERIALIZATION_ERRORS_TOTAL = Counter(
    f"{PREFIX}serialization_errors_total",
    "Total encode failures",
    labelnames=["format"],
    registry=EXPOSITION_REGISTRY,
)
