from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Protocol(str, Enum):
    TCP = "TCP"


@dataclass(frozen=True)
class PortRecord:
    """
    One local endpoint as reported by lsof.
    Equality compares every field; `key` is what matches rows across scans.
    """

    port: str
    process_name: str
    pid: str
    protocol: Protocol = Protocol.TCP

    @property
    def key(self) -> tuple[str, Protocol]:
        return (self.port, self.protocol)

    @property
    def port_number(self) -> int:
        try:
            return int(self.port)
        except ValueError:
            return 0

    def to_dict(self) -> dict:
        return {
            "port": self.port,
            "process": self.process_name,
            "pid": self.pid,
            "proto": self.protocol.value,
        }


def sort_by_port(records) -> list[PortRecord]:
    # sorted() is stable, so records sharing a port keep their relative order
    return sorted(records, key=lambda r: r.port_number)
