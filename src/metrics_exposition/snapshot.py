"""Versioned snapshot of a process's metric readings.

Two schema versions coexist on the wire. ``SnapshotV1`` predates duration
tracking; ``SnapshotV2`` adds the elapsed time since the previous snapshot.
``Snapshot`` wraps either one and is serialized without a discriminant, so
the version is inferred from the presence of ``duration`` when decoding.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Union

from pydantic import BaseModel, Field, RootModel, field_serializer, field_validator, model_validator

UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

U64_MAX = 2**64 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1


def split_timedelta(delta: timedelta) -> tuple[int, int]:
    """Return ``(whole seconds, nanoseconds)`` of a non-negative timedelta."""
    return delta.days * 86_400 + delta.seconds, delta.microseconds * 1_000


def timedelta_to_nanos(delta: timedelta) -> int:
    secs, nanos = split_timedelta(delta)
    return secs * 1_000_000_000 + nanos


class HistogramValue(BaseModel):
    """Bucketed distribution.

    ``bounds`` are the finite upper bounds of each bucket, ``counts`` holds one
    count per bound plus a trailing overflow bucket.
    """

    bounds: list[float] = []
    counts: list[int] = [0]
    sum: float = 0.0

    @model_validator(mode="before")
    @classmethod
    def parse_positional(cls, value: Any) -> Any:
        # [bounds, counts, sum]
        if isinstance(value, (list, tuple)) and len(value) == 3:
            return dict(zip(("bounds", "counts", "sum"), value))
        return value

    @model_validator(mode="after")
    def validate_buckets(self):
        if len(self.counts) != len(self.bounds) + 1:
            raise ValueError(f"Expected {len(self.bounds) + 1} bucket counts, got {len(self.counts)}")
        if any(count < 0 for count in self.counts):
            raise ValueError("Bucket counts must be non-negative")
        if not all(math.isfinite(bound) for bound in self.bounds):
            raise ValueError("Bucket bounds must be finite")
        if any(lower >= upper for lower, upper in zip(self.bounds, self.bounds[1:])):
            raise ValueError("Bucket bounds must be strictly increasing")
        return self

    @property
    def count(self) -> int:
        return sum(self.counts)


class Counter(BaseModel):
    name: str
    value: int = Field(ge=0, le=U64_MAX)
    metadata: dict[str, str] = {}


class Gauge(BaseModel):
    name: str
    value: int = Field(ge=I64_MIN, le=I64_MAX)
    metadata: dict[str, str] = {}


class Histogram(BaseModel):
    name: str
    value: HistogramValue
    metadata: dict[str, str] = {}


class _SnapshotFields(BaseModel):
    systemtime: datetime
    metadata: dict[str, str] = {}
    counters: list[Counter] = []
    gauges: list[Gauge] = []
    histograms: list[Histogram] = []

    @field_validator("systemtime", mode="before")
    @classmethod
    def parse_systemtime(cls, value: Any) -> Any:
        # {"secs_since_epoch": ..., "nanos_since_epoch": ...} or [secs, nanos]
        if isinstance(value, dict) and "secs_since_epoch" in value:
            value = [value["secs_since_epoch"], value.get("nanos_since_epoch", 0)]
        if isinstance(value, (list, tuple)) and len(value) == 2:
            secs, nanos = value
            return UNIX_EPOCH + timedelta(seconds=int(secs), microseconds=int(nanos) // 1_000)
        return value

    @field_validator("systemtime")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_serializer("systemtime")
    def serialize_systemtime(self, systemtime: datetime) -> dict[str, int]:
        since_epoch = systemtime - UNIX_EPOCH
        if since_epoch < timedelta(0):
            raise ValueError(f"systemtime {systemtime.isoformat()} is earlier than the Unix epoch")
        secs, nanos = split_timedelta(since_epoch)
        return {"secs_since_epoch": secs, "nanos_since_epoch": nanos}


class SnapshotV1(_SnapshotFields):
    """Snapshot without duration tracking."""


class SnapshotV2(_SnapshotFields):
    """Snapshot carrying the elapsed time since the previous one, for rate computation."""

    duration: timedelta

    @field_validator("duration", mode="before")
    @classmethod
    def parse_duration(cls, value: Any) -> Any:
        # {"secs": ..., "nanos": ...} or [secs, nanos]
        if isinstance(value, dict) and "secs" in value:
            value = [value["secs"], value.get("nanos", 0)]
        if isinstance(value, (list, tuple)) and len(value) == 2:
            secs, nanos = value
            return timedelta(seconds=int(secs), microseconds=int(nanos) // 1_000)
        return value

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, value: timedelta) -> timedelta:
        if value < timedelta(0):
            raise ValueError("duration must be non-negative")
        return value

    @field_serializer("duration")
    def serialize_duration(self, duration: timedelta) -> dict[str, int]:
        secs, nanos = split_timedelta(duration)
        return {"secs": secs, "nanos": nanos}


class Snapshot(RootModel[Union[SnapshotV2, SnapshotV1]]):
    """Either snapshot version, with version-transparent accessors.

    ``metadata()``, ``counters()``, ``gauges()`` and ``histograms()`` move the
    field out of the snapshot and leave it empty: a second call returns an
    empty result. Extract every field you need before discarding the
    snapshot, or ``model_copy(deep=True)`` it first.
    """

    # V2 first: a V2 payload is also a valid V1 payload with an extra field.
    root: Union[SnapshotV2, SnapshotV1] = Field(union_mode="left_to_right")

    @property
    def version(self) -> int:
        return 2 if isinstance(self.root, SnapshotV2) else 1

    def systemtime(self) -> datetime:
        return self.root.systemtime

    def duration(self) -> timedelta | None:
        if isinstance(self.root, SnapshotV2):
            return self.root.duration
        return None

    def metadata(self) -> dict[str, str]:
        return self._take("metadata", {})

    def counters(self) -> list[Counter]:
        return self._take("counters", [])

    def gauges(self) -> list[Gauge]:
        return self._take("gauges", [])

    def histograms(self) -> list[Histogram]:
        return self._take("histograms", [])

    def _take(self, field: str, empty: Any) -> Any:
        value = getattr(self.root, field)
        setattr(self.root, field, empty)
        return value
