"""
================================================================================
Process Runner
================================================================================

Runs a single external MongoDB tool as a child process.

Key Features:
    - Argument list built by the caller, no shell involved
    - stdout / stderr drained line by line into handlers
    - Wall-clock timeout on the wait, timed out children are killed
    - Executable bit fixed up on POSIX before launch

Lifecycle of one invocation:
    NotStarted -> Running -> Completed(exit_code) | TimedOut

Usage:
    invocation = ToolInvocation("mongoimport", args, binary_path, timeout=5000)
    result = run_tool(invocation, on_stdout=print)
    if result.timed_out:
        ...

================================================================================
"""

import os
import stat
import subprocess
import threading
from dataclasses import dataclass, field
from typing import Callable, IO, List, Optional

from loguru import logger


LineHandler = Callable[[str], None]

IS_UNIX = os.name != "nt"

# Seconds to wait for reader threads once the child is gone
STREAM_JOIN_TIMEOUT = 2.0


@dataclass
class ToolInvocation:
    """
    Everything needed to launch one tool.

    Attributes:
        tool: Executable name inside binary_path (e.g. "mongoimport")
        args: Ordered argument list
        binary_path: Folder holding the executable
        timeout: Wait bound in milliseconds
    """
    tool: str
    args: List[str]
    binary_path: str
    timeout: int = 5000

    @property
    def executable(self) -> str:
        return os.path.join(self.binary_path, self.tool)

    @property
    def command(self) -> List[str]:
        return [self.executable, *self.args]


@dataclass
class InvocationResult:
    """
    Outcome of one invocation.

    exit_code is None when the child did not finish within the timeout.
    """
    exit_code: Optional[int]
    stdout_lines: List[str] = field(default_factory=list)
    stderr_lines: List[str] = field(default_factory=list)
    completed: bool = True

    @property
    def timed_out(self) -> bool:
        return not self.completed

    @property
    def success(self) -> bool:
        return self.completed and self.exit_code == 0


def make_executable(path: str) -> None:
    """
    Adds the executable bits to ``path``. No-op on Windows.
    """
    if not IS_UNIX:
        return

    mode = os.stat(path).st_mode
    wanted = mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH
    if wanted != mode:
        os.chmod(path, wanted)
        logger.debug(f"Set executable bit on {path}")


def _pump(stream: IO[str], sink: List[str], handler: Optional[LineHandler]) -> None:
    """Reads a child stream to EOF, collecting and forwarding each line."""
    with stream:
        for raw in stream:
            line = raw.rstrip("\r\n")
            sink.append(line)
            if handler is not None:
                try:
                    handler(line)
                except Exception:
                    logger.exception(f"Output handler failed on line: {line!r}")


def start_pumps(
    process: subprocess.Popen,
    stdout_lines: List[str],
    stderr_lines: List[str],
    on_stdout: Optional[LineHandler] = None,
    on_stderr: Optional[LineHandler] = None,
) -> List[threading.Thread]:
    """
    Starts daemon threads draining the child's stdout and stderr.
    """
    threads = []
    for stream, sink, handler in (
        (process.stdout, stdout_lines, on_stdout),
        (process.stderr, stderr_lines, on_stderr),
    ):
        if stream is None:
            continue
        thread = threading.Thread(
            target=_pump,
            args=(stream, sink, handler),
            daemon=True,
        )
        thread.start()
        threads.append(thread)
    return threads


def run_tool(
    invocation: ToolInvocation,
    on_stdout: Optional[LineHandler] = None,
    on_stderr: Optional[LineHandler] = None,
) -> InvocationResult:
    """
    Launches the tool, blocks until it exits or the timeout elapses.

    Args:
        invocation: What to run.
        on_stdout: Called with every stdout line as it arrives.
        on_stderr: Called with every stderr line as it arrives.

    Returns:
        InvocationResult. A timed out child has been killed and reaped;
        its result carries completed=False and no exit code.
    """
    make_executable(invocation.executable)

    logger.debug(f"Executing: {' '.join(invocation.command)}")

    process = subprocess.Popen(
        invocation.command,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        stdin=subprocess.DEVNULL,
        text=True,
        encoding="utf-8",
        errors="replace",
    )

    stdout_lines: List[str] = []
    stderr_lines: List[str] = []
    threads = start_pumps(process, stdout_lines, stderr_lines, on_stdout, on_stderr)

    try:
        exit_code = process.wait(timeout=invocation.timeout / 1000.0)
        completed = True
    except subprocess.TimeoutExpired:
        logger.warning(
            f"{invocation.tool} did not exit within {invocation.timeout} ms, killing it"
        )
        process.kill()
        process.wait()
        exit_code = None
        completed = False

    for thread in threads:
        thread.join(STREAM_JOIN_TIMEOUT)

    logger.debug(f"{invocation.tool} finished: exit_code={exit_code}, completed={completed}")

    return InvocationResult(
        exit_code=exit_code,
        stdout_lines=stdout_lines,
        stderr_lines=stderr_lines,
        completed=completed,
    )


__all__ = [
    "IS_UNIX",
    "InvocationResult",
    "LineHandler",
    "ToolInvocation",
    "make_executable",
    "run_tool",
    "start_pumps",
]
