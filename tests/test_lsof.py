"""Tests for invoking lsof."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from ports_core.errors import AcquisitionError
from ports_core.modules.lsof import LSOF_ARGS, fetch_lsof_output, run_lsof


def completed(stdout: bytes, returncode: int = 0):
    return MagicMock(stdout=stdout, returncode=returncode)


class TestRunLsof:
    @patch("ports_core.modules.lsof.shutil.which", return_value="/usr/sbin/lsof")
    @patch("ports_core.modules.lsof.subprocess.run")
    def test_arguments_and_merged_output(self, run, _which):
        run.return_value = completed(b"COMMAND PID\n")
        assert run_lsof() == "COMMAND PID\n"

        args, kwargs = run.call_args
        assert args[0] == ["/usr/sbin/lsof", *LSOF_ARGS]
        assert LSOF_ARGS == ["-i", "-P", "-n", "+c0"]
        assert kwargs["stderr"] is subprocess.STDOUT

    @patch("ports_core.modules.lsof.subprocess.run")
    def test_nonzero_exit_still_returns_output(self, run):
        run.return_value = completed(b"HEADER\nrow\n", returncode=1)
        assert run_lsof() == "HEADER\nrow\n"

    @patch("ports_core.modules.lsof.subprocess.run", side_effect=FileNotFoundError("lsof"))
    def test_launch_failure(self, _run):
        with pytest.raises(AcquisitionError):
            run_lsof()

    @patch("ports_core.modules.lsof.subprocess.run")
    def test_undecodable_output(self, run):
        run.return_value = completed(b"\xff\xfe\xfa")
        with pytest.raises(AcquisitionError):
            run_lsof()


class TestFetchLsofOutput:
    @patch("ports_core.modules.lsof.subprocess.run", side_effect=OSError("denied"))
    def test_failure_is_none(self, _run):
        assert fetch_lsof_output() is None

    @patch("ports_core.modules.lsof.subprocess.run", side_effect=subprocess.TimeoutExpired("lsof", 30))
    def test_timeout_is_none(self, _run):
        assert fetch_lsof_output() is None

    @patch("ports_core.modules.lsof.subprocess.run")
    def test_success(self, run):
        run.return_value = completed(b"x\n")
        assert fetch_lsof_output() == "x\n"
