from __future__ import annotations


class PortsError(Exception):
    """Base error for ports_core."""


class AcquisitionError(PortsError):
    """The listing command could not be run or its output could not be read."""


class InvalidPidError(PortsError):
    def __init__(self, pid: str):
        super().__init__(f"invalid pid: {pid!r}")
        self.pid = pid
