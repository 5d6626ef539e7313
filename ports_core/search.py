from __future__ import annotations

from typing import Optional, Sequence

from ports_core.models import PortRecord, sort_by_port
from ports_core.parser import MAX_PORT


def _to_int(text: str) -> Optional[int]:
    text = text.strip()
    try:
        return int(text)
    except ValueError:
        return None


def parse_port_range(text: str) -> Optional[tuple[int, int]]:
    """
    "5000-"     -> (5000, 65535)
    "5000-7000" -> (5000, 7000)
    anything else, including a reversed range -> None
    """
    trimmed = text.strip()

    if trimmed.endswith("-"):
        start = _to_int(trimmed[:-1])
        if start is None:
            return None
        return (start, MAX_PORT)

    parts = trimmed.split("-")
    if len(parts) != 2:
        return None
    start, end = _to_int(parts[0]), _to_int(parts[1])
    if start is None or end is None or start > end:
        return None
    return (start, end)


def filter_ports(records: Sequence[PortRecord], query: str) -> list[PortRecord]:
    if not query:
        return list(records)

    rng = parse_port_range(query)
    if rng is not None:
        lo, hi = rng
        return [r for r in records if r.port.isdigit() and lo <= int(r.port) <= hi]

    needle = query.casefold()
    return [r for r in records if needle in r.process_name.casefold() or query in r.port]


def group_by_process(records: Sequence[PortRecord]) -> list[tuple[str, list[PortRecord]]]:
    groups: dict[str, list[PortRecord]] = {}
    for r in records:
        groups.setdefault(r.process_name, []).append(r)
    return [(name, sort_by_port(groups[name])) for name in sorted(groups)]


def split_groups(records: Sequence[PortRecord]) -> tuple[list[PortRecord], list[tuple[str, list[PortRecord]]]]:
    """Processes owning one port are flattened; the rest stay grouped."""
    grouped = group_by_process(records)
    singles = sort_by_port(items[0] for _, items in grouped if len(items) == 1)
    multi = [(name, items) for name, items in grouped if len(items) > 1]
    return singles, multi
