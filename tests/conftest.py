"""Pytest fixtures for ports tests."""

import logging

import pytest

from ports_core.models import PortRecord

HEADER = "COMMAND     PID USER   FD   TYPE             DEVICE SIZE/OFF NODE NAME"


def lsof_row(command: str, pid: str, proto: str, name: str, state: str = "(LISTEN)") -> str:
    return f"{command} {pid} al 23u IPv4 0x1a2b3c4d5e6f 0t0 {proto} {name} {state}".rstrip()


@pytest.fixture
def sample_output() -> str:
    """Header, two localhost TCP listeners and one UDP socket."""
    return "\n".join([
        HEADER,
        lsof_row("node", "4242", "TCP", "*:8080"),
        lsof_row("mDNSRespo", "311", "UDP", "*:53", state=""),
        lsof_row("vite", "5150", "TCP", "127.0.0.1:3000"),
        "",
    ])


@pytest.fixture
def rec():
    def make(port: str, name: str = "node", pid: str = "100") -> PortRecord:
        return PortRecord(port=port, process_name=name, pid=pid)
    return make


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Runtime state (.ports/) is written relative to the working directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture(autouse=True)
def restore_logging():
    """cli.main() reconfigures the root logger; undo it after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
