"""
Process Runner — Run an external command with a timeout and captured output.

The runner never raises for command failures. Every outcome is reported
as a ``RunResult`` whose ``status`` tells the caller what happened:

- OK:          exited with code 0
- FAILED:      exited with a nonzero code
- TIMEOUT:     killed after the timeout elapsed
- SPAWN_ERROR: could not be started (executable or cwd missing, ...)

## Usage

    from ghmirror.mirror.runner import run

    result = run(["git", "fetch", "-q"], cwd=mirror_dir, timeout=60)
    if not result.ok:
        ...
"""

from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Union

logger = logging.getLogger(__name__)

# How long to wait for output after killing a timed-out process
KILL_GRACE_SECONDS = 5.0


class RunStatus(str, Enum):
    """Outcome of a command run."""
    OK = "ok"
    FAILED = "failed"
    TIMEOUT = "timeout"
    SPAWN_ERROR = "spawn_error"


@dataclass
class RunResult:
    """Result of a single command run."""

    command: List[str]
    cwd: str
    status: RunStatus
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == RunStatus.OK

    @property
    def display_command(self) -> str:
        return shlex.join(self.command)

    def describe(self) -> str:
        """One-line summary for log messages."""
        if self.status == RunStatus.TIMEOUT:
            return f"timed out after {self.duration_seconds:.1f}s"
        if self.status == RunStatus.SPAWN_ERROR:
            return f"could not be started: {self.error}"
        return f"exit code {self.exit_code}"


def _indent(text: str) -> str:
    return "\n".join("    " + line for line in text.rstrip("\n").split("\n"))


def _kill(proc: subprocess.Popen) -> None:
    """Kill the process and everything it spawned in its session."""
    try:
        if hasattr(os, "killpg"):
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except ProcessLookupError:
        pass


def _log_result(result: RunResult) -> None:
    extra = {"command": result.display_command, "cwd": result.cwd, "status": result.status.value}
    log_fn = logger.info if result.ok else logger.warning

    if result.status == RunStatus.SPAWN_ERROR:
        logger.error(f"Command could not be started: {result.error}", extra=extra)
        return

    if result.status == RunStatus.TIMEOUT:
        logger.error(
            f"Command timed out after {result.duration_seconds:.1f}s and was killed",
            extra=extra,
        )
    else:
        log_fn(f"Command exited with code: {result.exit_code}", extra=extra)

    if result.stderr.strip():
        log_fn(f"  stderr:\n{_indent(result.stderr)}", extra=extra)
    if result.stdout.strip():
        log_fn(f"  stdout:\n{_indent(result.stdout)}", extra=extra)


def run(
    command: Sequence[str],
    cwd: Union[str, Path],
    timeout: Optional[float],
) -> RunResult:
    """
    Run ``command`` in ``cwd`` and wait for it, at most ``timeout`` seconds.

    On timeout the process group is killed and the output produced so far
    is collected within ``KILL_GRACE_SECONDS``.
    """
    cmd = [str(part) for part in command]
    cwd_str = str(cwd)
    logger.info(
        f'Executing command: "{shlex.join(cmd)}" in directory: "{cwd_str}"',
        extra={"command": shlex.join(cmd), "cwd": cwd_str},
    )

    start = time.monotonic()
    try:
        proc = subprocess.Popen(
            cmd,
            cwd=cwd_str,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as e:
        result = RunResult(
            command=cmd,
            cwd=cwd_str,
            status=RunStatus.SPAWN_ERROR,
            error=str(e),
            duration_seconds=time.monotonic() - start,
        )
        _log_result(result)
        return result

    timed_out = False
    try:
        out, err = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        timed_out = True
        _kill(proc)
        try:
            out, err = proc.communicate(timeout=KILL_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            # Something outside the process group still holds the pipes
            logger.warning(f"Output of killed process {proc.pid} not collected")
            for pipe in (proc.stdout, proc.stderr):
                if pipe is not None:
                    pipe.close()
            proc.wait(timeout=KILL_GRACE_SECONDS)
            out, err = b"", b""

    result = RunResult(
        command=cmd,
        cwd=cwd_str,
        status=RunStatus.OK,
        exit_code=proc.returncode,
        stdout=(out or b"").decode("utf-8", "replace"),
        stderr=(err or b"").decode("utf-8", "replace"),
        duration_seconds=time.monotonic() - start,
    )
    if timed_out:
        result.status = RunStatus.TIMEOUT
    elif proc.returncode != 0:
        result.status = RunStatus.FAILED

    _log_result(result)
    return result
