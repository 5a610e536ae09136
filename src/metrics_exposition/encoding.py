"""JSON and MessagePack encoders for snapshots (or any serializable value)."""

from __future__ import annotations

import json
from typing import Any

import msgpack
from loguru import logger
from pydantic import BaseModel, ValidationError

from metrics_exposition.exceptions import DeserializationError, SerializationError
from metrics_exposition.metric_registry import SERIALIZATION_ERRORS_TOTAL
from metrics_exposition.snapshot import Snapshot


def to_json(value: Any) -> bytes:
    """Encode ``value`` as compact JSON followed by a single newline."""
    try:
        encoded = json.dumps(
            value,
            default=_encode_default,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        ).encode("utf-8")
    except (TypeError, ValueError, OverflowError, RecursionError) as exc:
        raise _serialization_error(value, "json", exc) from exc
    return encoded + b"\n"


def to_msgpack(value: Any) -> bytes:
    """Encode ``value`` as MessagePack with no framing."""
    try:
        return msgpack.packb(value, default=_encode_default, use_bin_type=True)
    except (TypeError, ValueError, OverflowError, RecursionError) as exc:
        raise _serialization_error(value, "msgpack", exc) from exc


def from_json(data: bytes | str) -> Snapshot:
    """Decode a JSON snapshot of either version. Trailing whitespace is ignored."""
    try:
        return Snapshot.model_validate_json(data)
    except ValidationError as exc:
        raise DeserializationError(f"Invalid JSON snapshot: {exc}", format="json") from exc


def from_msgpack(data: bytes) -> Snapshot:
    """Decode a MessagePack snapshot of either version.

    Accepts both map-encoded structs and the positional array encoding of
    older producers.
    """
    try:
        payload = msgpack.unpackb(data, raw=False)
        return Snapshot.model_validate(_from_positional(payload))
    except (TypeError, ValueError, msgpack.UnpackException) as exc:
        raise DeserializationError(f"Invalid msgpack snapshot: {exc}", format="msgpack") from exc


_V1_FIELDS = ("systemtime", "metadata", "counters", "gauges", "histograms")
_V2_FIELDS = ("systemtime", "duration", "metadata", "counters", "gauges", "histograms")
_RECORD_FIELDS = ("name", "value", "metadata")


def _from_positional(payload: Any) -> Any:
    """Map an array-encoded snapshot onto field names. Array length tells the version apart."""
    if not isinstance(payload, list):
        return payload
    fields = {len(_V1_FIELDS): _V1_FIELDS, len(_V2_FIELDS): _V2_FIELDS}.get(len(payload))
    if fields is None:
        return payload

    snapshot = dict(zip(fields, payload))
    for kind in ("counters", "gauges", "histograms"):
        if isinstance(snapshot[kind], list):
            snapshot[kind] = [
                dict(zip(_RECORD_FIELDS, record)) if isinstance(record, list) else record for record in snapshot[kind]
            ]
    return snapshot


def _encode_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump()
    raise TypeError(f"Object of type {type(value).__name__} is not serializable")


def _serialization_error(value: Any, format: str, exc: Exception) -> SerializationError:
    SERIALIZATION_ERRORS_TOTAL.labels(format=format).inc()
    logger.warning(f"Failed to encode {type(value).__name__} as {format}: {exc}")
    return SerializationError(f"Failed to encode {type(value).__name__} as {format}: {exc}", format=format)
