from __future__ import annotations

import logging
import platform
import shutil
import subprocess

from ports_core.errors import AcquisitionError

logger = logging.getLogger(__name__)

# internet sockets, numeric ports, numeric hosts, untruncated command names
LSOF_ARGS = ["-i", "-P", "-n", "+c0"]
MACOS_LSOF = "/usr/sbin/lsof"


def resolve_lsof(lsof_path: str = "lsof") -> str:
    found = shutil.which(lsof_path)
    if found:
        return found
    if platform.system().lower() == "darwin":
        return MACOS_LSOF
    return lsof_path


def run_lsof(lsof_path: str = "lsof", timeout: float | None = 30.0) -> str:
    """
    Runs lsof and returns stdout+stderr as one text blob.
    A non-zero exit is not an error: lsof exits 1 whenever some descriptor
    could not be read, while still printing everything it could.
    """
    cmd = [resolve_lsof(lsof_path), *LSOF_ARGS]
    try:
        r = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            timeout=timeout,
        )  # noqa: S603
    except (OSError, subprocess.SubprocessError) as e:
        raise AcquisitionError(f"failed to run {cmd[0]}: {e}") from e

    if r.returncode != 0:
        logger.debug("lsof exited non-zero", extra={"returncode": r.returncode})

    try:
        return r.stdout.decode("utf-8")
    except UnicodeDecodeError as e:
        raise AcquisitionError(f"lsof output is not valid UTF-8: {e}") from e


def fetch_lsof_output(lsof_path: str = "lsof") -> str | None:
    """Same as run_lsof, but a failed acquisition becomes None."""
    try:
        return run_lsof(lsof_path)
    except AcquisitionError as e:
        logger.warning(f"Port scan skipped: {e}")
        return None
