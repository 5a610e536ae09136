"""Name-indexed projection of a Snapshot."""

from __future__ import annotations

from datetime import timedelta
from typing import TypeVar

from loguru import logger
from pydantic import BaseModel

from metrics_exposition.naming import canonicalize_metric_name
from metrics_exposition.snapshot import UNIX_EPOCH, Counter, Gauge, Histogram, Snapshot, timedelta_to_nanos

R = TypeVar("R", Counter, Gauge, Histogram)


class HashedSnapshot(BaseModel):
    """Snapshot records keyed by canonical metric name.

    ``timestamp`` and ``duration`` are nanoseconds; ``duration`` is ``None``
    for V1 snapshots.
    """

    timestamp: int
    duration: int | None = None
    counters: dict[str, Counter] = {}
    gauges: dict[str, Gauge] = {}
    histograms: dict[str, Histogram] = {}

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> HashedSnapshot:
        """Consume ``snapshot`` and index its records.

        The snapshot's record collections are drained. When two records share
        a canonical name the later one wins.
        """
        since_epoch = snapshot.systemtime() - UNIX_EPOCH
        if since_epoch < timedelta(0):
            logger.critical("System clock is earlier than 1970; needs reset")
            raise RuntimeError("System clock is earlier than 1970; needs reset")

        duration = snapshot.duration()

        return cls(
            timestamp=timedelta_to_nanos(since_epoch),
            duration=timedelta_to_nanos(duration) if duration is not None else None,
            counters=_index(snapshot.counters(), "counters"),
            gauges=_index(snapshot.gauges(), "gauges"),
            histograms=_index(snapshot.histograms(), "histograms"),
        )


def _index(records: list[R], kind: str) -> dict[str, R]:
    indexed: dict[str, R] = {}
    for record in records:
        indexed[canonicalize_metric_name(record.name, record.metadata)] = record

    collapsed = len(records) - len(indexed)
    if collapsed:
        logger.debug(f"HashedSnapshot: {collapsed} {kind} collapsed onto an existing canonical name")
    return indexed
