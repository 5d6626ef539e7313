from __future__ import annotations

import logging
import re

from ports_core.models import PortRecord, Protocol, sort_by_port

logger = logging.getLogger(__name__)

MIN_COLUMNS = 9
COL_COMMAND = 0
COL_PID = 1
COL_PROTO = 7
COL_NAME = 8

MAX_PORT = 65535

LOCALHOST_PATTERNS = (
    "127.0.0.1:",
    "localhost:",
    "[::1]:",
    "*:127.0.0.1:",
    "*:localhost:",
)

_PORT_END = re.compile(r"[ (]")


def local_part(descriptor: str) -> str:
    """'192.0.0.2:62310->17.253.21.201:80' -> '192.0.0.2:62310'"""
    return descriptor.split("->", 1)[0]


def _clean_port(segment: str) -> str | None:
    port = _PORT_END.split(segment, 1)[0].strip()
    if not (port.isascii() and port.isdigit()):
        return None
    if int(port) > MAX_PORT:
        return None
    return port


def extract_port(descriptor: str) -> str | None:
    """
    Local port of an lsof NAME column, or None.

        127.0.0.1:5173            -> 5173
        *:5173                    -> 5173
        [::1]:5173                -> 5173
        127.0.0.1:5173 (LISTEN)   -> 5173
        192.0.0.2:62310->1.2.3.4:80 -> 62310
    """
    address = local_part(descriptor)

    if "]" in address:
        parts = address.split("]:")
        if len(parts) == 2:
            port = _clean_port(parts[1])
            if port is not None:
                return port

    return _clean_port(address.split(":")[-1])


def is_localhost(descriptor: str) -> bool:
    address = local_part(descriptor)

    for pattern in LOCALHOST_PATTERNS:
        if pattern in address:
            return True

    # wildcard binds are reachable through localhost as well
    return address.startswith("*:") and "->" not in address


def clean_process_name(raw: str) -> str:
    # lsof +c0 escapes spaces in command names as \x20
    return raw.replace("\\x20", " ")


def parse_line(line: str) -> PortRecord | None:
    parts = line.split()
    if len(parts) < MIN_COLUMNS:
        return None

    if parts[COL_PROTO] != Protocol.TCP.value:
        return None

    descriptor = parts[COL_NAME]
    port = extract_port(descriptor)
    if not port or not is_localhost(descriptor):
        return None

    return PortRecord(
        port=port,
        process_name=clean_process_name(parts[COL_COMMAND]),
        pid=parts[COL_PID],
        protocol=Protocol.TCP,
    )


def dedupe(records) -> list[PortRecord]:
    seen: dict[tuple, PortRecord] = {}
    for rec in records:
        seen.setdefault(rec.key, rec)
    return list(seen.values())


def parse_lsof(output: str) -> list[PortRecord]:
    """
    Parse `lsof -i -P -n +c0` output into deduplicated localhost TCP records,
    ascending by port. The first line is always treated as the header.
    """
    records: list[PortRecord] = []
    skipped = 0
    for line in output.splitlines()[1:]:
        rec = parse_line(line)
        if rec is None:
            skipped += 1
            continue
        records.append(rec)

    unique = dedupe(records)
    logger.debug(f"Parsed lsof output, {skipped} rows skipped", extra={"count": len(unique)})
    return sort_by_port(unique)
