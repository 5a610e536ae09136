"""Assemble a Snapshot from a prometheus CollectorRegistry."""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from loguru import logger
from prometheus_client import REGISTRY, CollectorRegistry
from prometheus_client.metrics_core import Metric
from pydantic import ValidationError

from metrics_exposition import settings
from metrics_exposition.metric_registry import SNAPSHOT_RECORDS, SNAPSHOTS_TOTAL
from metrics_exposition.snapshot import Counter, Gauge, Histogram, HistogramValue, Snapshot, SnapshotV2


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Snapshotter:
    """Reads a registry into V2 snapshots.

    Each ``snapshot()`` call records the time elapsed since the previous call
    on the same instance (zero for the first one). When to call it is up to
    the caller.

    Unlabelled samples keep their sample name as the unique identifier.
    Labelled samples share a name, so the labels go into metadata together
    with ``metric`` (and ``unit`` when the family declares one), which
    ``canonicalize_metric_name`` turns back into a unique key.
    """

    def __init__(
        self,
        registry: CollectorRegistry = REGISTRY,
        *,
        metadata: dict[str, str] | None = None,
        filter: Callable[[str], bool] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._registry = registry
        self._metadata = {"source": settings.SOURCE, "git_sha": settings.GIT_SHA}
        if metadata:
            self._metadata.update(metadata)
        self._filter = filter
        self._clock = clock or _utcnow
        self._previous: datetime | None = None

    def snapshot(self) -> Snapshot:
        """Collect the registry. Never raises: malformed families are skipped with a warning."""
        now = self._clock()
        duration = timedelta(0) if self._previous is None else max(now - self._previous, timedelta(0))
        self._previous = now

        counters: list[Counter] = []
        gauges: list[Gauge] = []
        histograms: list[Histogram] = []

        try:
            families = list(self._registry.collect())
        except Exception:
            logger.opt(exception=True).warning("Failed to collect metrics from registry")
            families = []

        for family in families:
            try:
                if family.type == "counter":
                    counters.extend(self._counters(family))
                elif family.type == "gauge":
                    gauges.extend(self._gauges(family))
                elif family.type == "histogram":
                    histograms.extend(self._histograms(family))
                else:
                    logger.debug(f"Skipping {family.type} metric family '{family.name}'")
            except Exception:
                logger.opt(exception=True).warning(
                    f"Failed to snapshot metric family '{getattr(family, 'name', '?')}'"
                )

        snapshot = Snapshot(
            SnapshotV2(
                systemtime=now,
                duration=duration,
                metadata=dict(self._metadata),
                counters=counters,
                gauges=gauges,
                histograms=histograms,
            )
        )

        SNAPSHOTS_TOTAL.inc()
        SNAPSHOT_RECORDS.labels(kind="counter").set(len(counters))
        SNAPSHOT_RECORDS.labels(kind="gauge").set(len(gauges))
        SNAPSHOT_RECORDS.labels(kind="histogram").set(len(histograms))
        logger.debug(
            f"Snapshot: {len(counters)} counters, {len(gauges)} gauges, "
            f"{len(histograms)} histograms (duration={duration.total_seconds():.3f}s)"
        )
        return snapshot

    def _accept(self, name: str) -> bool:
        return self._filter is None or self._filter(name)

    def _counters(self, family: Metric) -> list[Counter]:
        records = []
        for sample in family.samples:
            # Skip *_created
            if not sample.name.endswith("_total") or not self._accept(sample.name):
                continue
            record = _sample_record(Counter, sample.name, sample.labels, sample.value, family.unit)
            if record is not None:
                records.append(record)
        return records

    def _gauges(self, family: Metric) -> list[Gauge]:
        records = []
        for sample in family.samples:
            if not self._accept(sample.name):
                continue
            record = _sample_record(Gauge, sample.name, sample.labels, sample.value, family.unit)
            if record is not None:
                records.append(record)
        return records

    def _histograms(self, family: Metric) -> list[Histogram]:
        if not self._accept(family.name):
            return []

        labelsets: dict[frozenset, dict[str, str]] = {}
        buckets: dict[frozenset, list[tuple[float, float]]] = {}
        sums: dict[frozenset, float] = {}

        for sample in family.samples:
            if sample.name == f"{family.name}_bucket":
                labels = {k: v for k, v in sample.labels.items() if k != "le"}
                key = frozenset(labels.items())
                labelsets.setdefault(key, labels)
                buckets.setdefault(key, []).append((float(sample.labels["le"]), sample.value))
            elif sample.name == f"{family.name}_sum":
                sums[frozenset(sample.labels.items())] = sample.value

        records = []
        for key, labels in labelsets.items():
            if _reserved_label(family.name, labels):
                continue
            try:
                records.append(
                    Histogram(
                        name=family.name,
                        value=_histogram_value(buckets[key], sums.get(key, 0.0)),
                        metadata=_metadata(family.name, labels, family.unit),
                    )
                )
            except (OverflowError, ValueError):
                logger.opt(exception=True).warning(f"Skipping malformed histogram sample '{family.name}' {labels}")
        return records


def _sample_record(model: type[Counter] | type[Gauge], name: str, labels: dict[str, str], value: float, unit: str):
    """Build one record, or return None (with a warning) when the sample can't be represented."""
    if _reserved_label(name, labels):
        return None
    if not math.isfinite(value):
        logger.warning(f"Skipping non-finite {model.__name__.lower()} sample '{name}' {labels} ({value})")
        return None
    try:
        return model(name=name, value=int(value), metadata=_metadata(name, labels, unit))
    except ValidationError:
        logger.warning(f"Skipping out-of-range {model.__name__.lower()} sample '{name}' {labels} ({value})")
        return None


def _reserved_label(name: str, labels: dict[str, str]) -> bool:
    # "metric" carries the metric name in tagged metadata
    if "metric" in labels:
        logger.warning(f"Skipping sample '{name}' {labels}: label 'metric' is reserved")
        return True
    return False


def _metadata(name: str, labels: dict[str, str], unit: str) -> dict[str, str]:
    metadata = dict(labels)
    if labels:
        metadata["metric"] = name
    if unit:
        metadata["unit"] = unit
    return metadata


def _histogram_value(cumulative: list[tuple[float, float]], total: float) -> HistogramValue:
    """Convert prometheus cumulative ``le`` buckets into per-bucket counts."""
    bounds: list[float] = []
    counts: list[int] = []
    overflow = 0
    previous = 0
    for bound, running in sorted(cumulative):
        count = int(running) - previous
        previous = int(running)
        if math.isinf(bound):
            overflow = count
        else:
            bounds.append(bound)
            counts.append(count)
    counts.append(overflow)
    return HistogramValue(bounds=bounds, counts=counts, sum=total)
