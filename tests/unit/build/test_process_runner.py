"""Unit tests for external tool execution."""

import shlex
import sys
from unittest.mock import patch

import pytest

from opencv_builder.build.process_runner import (
    COMMAND_NOT_EXECUTABLE,
    COMMAND_NOT_FOUND,
    ProcessOutcome,
    ProcessRunner,
)
from opencv_builder.errors import ProcessFailed

PYTHON = shlex.quote(sys.executable)


class TestProcessOutcome:
    def test_success(self):
        outcome = ProcessOutcome("cmake", 0)
        assert outcome.success
        assert outcome.raise_for_status() is outcome

    def test_failure(self):
        with pytest.raises(ProcessFailed) as exc_info:
            ProcessOutcome("make", 2).raise_for_status()
        assert exc_info.value.tool == "make"
        assert exc_info.value.exit_status == 2
        assert str(exc_info.value) == "errors running make: exit status 2"


class TestProcessRunner:
    """Test cases for ProcessRunner."""

    def test_command_mapping(self):
        runner = ProcessRunner({"cmake": "/opt/cmake/bin/cmake --log-level=ERROR"})
        assert runner.command_for("cmake") == ["/opt/cmake/bin/cmake", "--log-level=ERROR"]
        assert runner.command_for("make") == ["make"]

    def test_run_success(self):
        runner = ProcessRunner({"py": PYTHON})
        outcome = runner.run("py", ["-c", "import sys; sys.exit(0)"])
        assert outcome == ProcessOutcome("py", 0)

    def test_run_failure_is_not_raised(self):
        runner = ProcessRunner({"py": PYTHON})
        outcome = runner.run("py", ["-c", "import sys; sys.exit(3)"])
        assert not outcome.success
        assert outcome.returncode == 3

    def test_check_raises_with_label(self):
        runner = ProcessRunner({"py": PYTHON})
        with pytest.raises(ProcessFailed) as exc_info:
            runner.check("py", ["-c", "import sys; sys.exit(5)"], label="make install")
        assert exc_info.value.tool == "make install"
        assert exc_info.value.exit_status == 5

    def test_runs_in_cwd(self, tmp_path):
        runner = ProcessRunner({"py": PYTHON})
        runner.check("py", ["-c", "open('marker', 'w').close()"], cwd=tmp_path)
        assert (tmp_path / "marker").exists()

    def test_output_not_captured(self, capfd):
        runner = ProcessRunner({"py": PYTHON})
        runner.run("py", ["-c", "import sys; sys.stderr.write('diagnostic\\n'); sys.exit(1)"])
        assert "diagnostic" in capfd.readouterr().err

    def test_missing_executable(self):
        runner = ProcessRunner({"cmake": "/nonexistent/bin/cmake-does-not-exist"})
        outcome = runner.run("cmake", ["--version"])
        assert outcome == ProcessOutcome("cmake", COMMAND_NOT_FOUND)

    def test_windows_paths_keep_backslashes(self):
        runner = ProcessRunner({"cmake": r"C:\Tools\cmake.exe"})
        with patch("opencv_builder.build.process_runner.os.name", "nt"):
            assert runner.command_for("cmake") == [r"C:\Tools\cmake.exe"]

    def test_permission_denied(self):
        runner = ProcessRunner({"cmake": "/opt/cmake/bin/cmake"})
        with patch(
            "opencv_builder.build.process_runner.subprocess.run",
            side_effect=PermissionError(13, "Permission denied"),
        ):
            outcome = runner.run("cmake", ["--version"])
        assert outcome == ProcessOutcome("cmake", COMMAND_NOT_EXECUTABLE)

    def test_non_executable_tool_raises_process_failed(self, tmp_path):
        tool = tmp_path / "cmake"
        tool.write_text("#!/bin/sh\nexit 0\n")
        tool.chmod(0o644)
        runner = ProcessRunner({"cmake": str(tool)})
        with pytest.raises(ProcessFailed) as exc_info:
            runner.check("cmake", ["--version"])
        assert exc_info.value.exit_status == COMMAND_NOT_EXECUTABLE

    def test_cwd_not_a_directory(self, tmp_path):
        not_a_dir = tmp_path / "file"
        not_a_dir.write_text("")
        runner = ProcessRunner({"py": PYTHON})
        outcome = runner.run("py", ["-c", "pass"], cwd=not_a_dir)
        assert outcome == ProcessOutcome("py", COMMAND_NOT_EXECUTABLE)

    def test_no_retry(self, tmp_path):
        counter = tmp_path / "count"
        script = (
            "import pathlib, sys; p = pathlib.Path(sys.argv[1]); "
            "p.write_text(p.read_text() + 'x' if p.exists() else 'x'); sys.exit(1)"
        )
        runner = ProcessRunner({"py": PYTHON})
        with pytest.raises(ProcessFailed):
            runner.check("py", ["-c", script, str(counter)])
        assert counter.read_text() == "x"
