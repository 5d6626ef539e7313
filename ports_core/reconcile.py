from __future__ import annotations

from typing import Optional, Sequence

from ports_core.models import PortRecord, sort_by_port


def merge(old: Sequence[PortRecord], new: Sequence[PortRecord]) -> list[PortRecord]:
    """
    Records whose key survives keep their old position with the new values,
    new keys are appended in `new` order, vanished keys are dropped.
    """
    new_by_key = {r.key: r for r in new}
    old_keys = {r.key for r in old}

    merged = [new_by_key[r.key] for r in old if r.key in new_by_key]
    merged.extend(r for r in new if r.key not in old_keys)
    return merged


def reconcile(old: Sequence[PortRecord], new: Sequence[PortRecord]) -> Optional[list[PortRecord]]:
    """
    Returns the list to publish next, or None when nothing changed.
    """
    if list(old) == list(new):
        return None

    merged = sort_by_port(merge(old, new))
    if merged == list(old):
        return None
    return merged


def changes(old: Sequence[PortRecord], new: Sequence[PortRecord]) -> dict:
    old_by_key = {r.key: r for r in old}
    new_by_key = {r.key: r for r in new}
    return {
        "added": [r.port for r in new if r.key not in old_by_key],
        "removed": [r.port for r in old if r.key not in new_by_key],
        "changed": [r.port for r in new if r.key in old_by_key and old_by_key[r.key] != r],
    }
