from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Iterable, Union

from ports_core.errors import InvalidPidError
from ports_core.models import PortRecord

logger = logging.getLogger(__name__)


@dataclass
class KillResult:
    pid: str
    ok: bool
    message: str
    process_name: str = ""

    def to_dict(self) -> dict:
        return {"ok": self.ok, "pid": self.pid, "process": self.process_name, "message": self.message}


def _check_pid(pid: str) -> str:
    pid = str(pid).strip()
    if not (pid.isascii() and pid.isdigit()) or int(pid) <= 0:
        raise InvalidPidError(pid)
    return pid


def send_sigkill(pid: str, kill_path: str = "kill") -> str:
    """
    Runs `kill -9 <pid>`. Returns the command output, raises on failure.
    """
    pid = _check_pid(pid)
    r = subprocess.run(
        [kill_path, "-9", pid],
        text=True,
        capture_output=True,
    )  # noqa: S603
    if r.returncode != 0:
        raise OSError(r.stderr.strip() or r.stdout.strip() or f"kill exited with {r.returncode}")
    return r.stdout.strip()


def kill_process(pid: str, process_name: str = "", kill_path: str = "kill") -> KillResult:
    try:
        send_sigkill(pid, kill_path=kill_path)
    except (InvalidPidError, OSError) as e:
        logger.warning(f"Failed to kill process {process_name or '?'}: {e}", extra={"pid": pid})
        return KillResult(pid=str(pid), ok=False, message=str(e), process_name=process_name)

    logger.info(f"Killed process {process_name or '?'}", extra={"pid": pid})
    return KillResult(pid=str(pid), ok=True, message="Process killed.", process_name=process_name)


def kill_processes(targets: Iterable[Union[PortRecord, str]], kill_path: str = "kill") -> list[KillResult]:
    """
    Kill every distinct PID among `targets` (records or bare PIDs).
    A failure is reported in its own result and does not stop the batch.
    """
    results: list[KillResult] = []
    done: set[str] = set()
    for t in targets:
        if isinstance(t, PortRecord):
            pid, name = t.pid, t.process_name
        else:
            pid, name = str(t), ""
        if pid in done:
            continue
        done.add(pid)
        results.append(kill_process(pid, process_name=name, kill_path=kill_path))
    return results


def kill_and_refresh(monitor, targets, kill_path: str = "kill") -> list[KillResult]:
    results = kill_processes(targets, kill_path=kill_path)
    # refresh quietly so the list does not flicker after a kill
    monitor.refresh_ports(show_loading=False)
    return results
