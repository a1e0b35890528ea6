"""Conversions between label maps and stored tag strings."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping

from entropy.core.resource import SyncResult


def tags_to_label_map(tags: Iterable[str]) -> dict[str, str]:
    """Turn ``key=value`` tags into a label mapping.

    Raises ValueError for a tag without ``=``.
    """
    labels: dict[str, str] = {}
    for tag in tags:
        key, sep, value = tag.partition("=")
        if not sep:
            raise ValueError(f"malformed tag {tag!r}: expected 'key=value'")
        labels[key] = value
    return labels


def label_map_to_tags(labels: Mapping[str, str] | None) -> list[str]:
    """Turn a label mapping into ``key=value`` tags."""
    return [f"{key}={value}" for key, value in (labels or {}).items()]


def sync_result_as_json(sync_result: SyncResult) -> bytes | None:
    """Encode a sync result as compact JSON, or None if it is empty."""
    if sync_result == SyncResult():
        return None
    payload = {"retries": sync_result.retries, "last_error": sync_result.last_error}
    return json.dumps(payload, separators=(",", ":")).encode()