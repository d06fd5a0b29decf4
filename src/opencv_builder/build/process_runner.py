"""External tool execution.

This module runs the configure, compile and install tools as blocking
subprocesses and classifies their exit status.

Design:
    - Wraps subprocess.run, one process at a time
    - Output is not captured so compiler and CMake diagnostics stay visible
    - Non-zero exit maps to ProcessFailed carrying tool name and status
    - No retries: toolchain failures are reported as they happen
"""

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from opencv_builder.errors import ProcessFailed

logger = logging.getLogger(__name__)

# Conventional shell statuses for tools that could not be launched
COMMAND_NOT_EXECUTABLE = 126
COMMAND_NOT_FOUND = 127


@dataclass(frozen=True)
class ProcessOutcome:
    """Exit status of one tool invocation."""

    tool: str
    returncode: int

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def raise_for_status(self) -> "ProcessOutcome":
        """Raise ProcessFailed unless the tool exited with status zero."""
        if not self.success:
            raise ProcessFailed(self.tool, self.returncode)
        return self


class ProcessRunner:
    """Runs named external tools.

    Tool names map to commands, so ``cmake`` can be backed by e.g.
    ``/opt/cmake/bin/cmake`` or by ``python fake_cmake.py`` in tests.
    """

    def __init__(self, commands: Optional[Mapping[str, str]] = None):
        """Initialize runner.

        Args:
            commands: Mapping of tool name to command string. Tools without
                an entry are run by name.
        """
        self.commands: Dict[str, str] = dict(commands or {})

    def command_for(self, tool: str) -> List[str]:
        """Resolve a tool name to the argv prefix used to launch it."""
        command = self.commands.get(tool, tool)
        return shlex.split(command, posix=os.name != "nt")

    def run(
        self,
        tool: str,
        args: Sequence[str],
        cwd: Optional[Path] = None,
        label: Optional[str] = None,
    ) -> ProcessOutcome:
        """Run a tool and wait for it to exit.

        Args:
            tool: Tool name, resolved through the command mapping
            args: Arguments passed after the command
            cwd: Working directory for the process
            label: Name reported on failure, defaults to the tool name

        Returns:
            ProcessOutcome with the exit status
        """
        name = label or tool
        cmd = self.command_for(tool) + [str(arg) for arg in args]
        logger.debug(f"Running {name}: {shlex.join(cmd)}")

        try:
            result = subprocess.run(cmd, cwd=cwd)
        except FileNotFoundError:
            logger.error(f"{name}: command not found: {cmd[0]}")
            return ProcessOutcome(name, COMMAND_NOT_FOUND)
        except OSError as e:
            logger.error(f"{name}: cannot launch {cmd[0]}: {e}")
            return ProcessOutcome(name, COMMAND_NOT_EXECUTABLE)

        return ProcessOutcome(name, result.returncode)

    def check(
        self,
        tool: str,
        args: Sequence[str],
        cwd: Optional[Path] = None,
        label: Optional[str] = None,
    ) -> ProcessOutcome:
        """Run a tool and raise ProcessFailed on non-zero exit."""
        return self.run(tool, args, cwd=cwd, label=label).raise_for_status()
