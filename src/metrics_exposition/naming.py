"""Derive one deterministic key per metric instance.

Older producers give every metric a unique, human-readable name. Newer ones
give an opaque name and carry the identity in metadata, under ``metric`` plus
dimension keys. ``canonicalize_metric_name`` maps both onto the same key
space.

``ORDERED_KEYS`` and ``IGNORED_KEYS`` are a stable contract: changing either
changes every produced name.
"""

from __future__ import annotations

from collections.abc import Mapping

ORDERED_KEYS: tuple[str, ...] = ("name", "op", "state", "direction")

IGNORED_KEYS: frozenset[str] = frozenset(ORDERED_KEYS) | {"metric", "unit", "grouping_power", "max_value_power", "id"}


def canonicalize_metric_name(name: str, metadata: Mapping[str, str]) -> str:
    """Return the canonical name for a metric.

    Without a ``metric`` key the raw name is already unique and is returned
    as-is. Otherwise the name is ``metric`` followed by the ordered dimension
    values, the remaining values by ascending key, and ``id`` last, joined
    with ``/``.
    """
    if "metric" not in metadata:
        return name

    parts = [metadata["metric"]]
    parts.extend(metadata[key] for key in ORDERED_KEYS if key in metadata)
    parts.extend(metadata[key] for key in sorted(metadata) if key not in IGNORED_KEYS)
    if "id" in metadata:
        parts.append(metadata["id"])
    return "/".join(parts)
