"""Asyncio subprocess executor with wall-clock and output-size limits."""

from __future__ import annotations

import asyncio
import os
import signal
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence, Union

from cpstress.logging import get_logger
from cpstress.models.execution import (
    TIMEOUT_SIGNAL,
    ExecutionResult,
    Limits,
    RawExecutionResult,
    derive_status,
)
from cpstress.models.verdict import CaseStatus

Command = Union[str, "os.PathLike[str]", Sequence[str]]

_READ_CHUNK = 64 * 1024
# Grace period between SIGTERM and SIGKILL for children that ignore SIGTERM.
_KILL_GRACE_S = 1.0

log = get_logger("executor")


def _argv(command: Command) -> list[str]:
    if isinstance(command, (str, os.PathLike)):
        return [os.fspath(command)]
    return [os.fspath(part) for part in command]


def _decode(buf: bytearray) -> str:
    return bytes(buf).decode("utf-8", errors="replace")


@dataclass
class _Capture:
    """Accumulates both output streams and tracks the shared byte budget."""

    max_bytes: int | None
    stdout: bytearray = field(default_factory=bytearray)
    stderr: bytearray = field(default_factory=bytearray)
    overflow: bool = False

    def add(self, buf: bytearray, chunk: bytes) -> bool:
        """Append a chunk; return True once the budget is exceeded."""
        if self.max_bytes is not None:
            room = self.max_bytes - len(self.stdout) - len(self.stderr)
            if len(chunk) > room:
                buf.extend(chunk[: max(room, 0)])
                self.overflow = True
                return True
        buf.extend(chunk)
        return False


@dataclass
class _Outcome:
    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None
    signal: str | None = None
    overflow: bool = False
    spawn_error: str | None = None
    duration_ms: float = 0.0


class ProcessExecutor:
    """Runs child processes and classifies how they ended.

    Never raises for a non-zero exit: every outcome is represented in the
    returned model.
    """

    def __init__(self, default_limits: Limits | None = None) -> None:
        self.default_limits = default_limits or Limits()

    async def run(
        self,
        command: Command,
        stdin_text: str = "",
        limits: Limits | None = None,
    ) -> ExecutionResult:
        """Run `command` feeding `stdin_text`, under time and output limits."""
        lim = limits or self.default_limits
        out = await _execute(_argv(command), stdin_text, lim.timeout_s, lim.max_output_bytes)
        if out.spawn_error is not None:
            return ExecutionResult(
                stdout="",
                stderr=out.spawn_error,
                duration_ms=out.duration_ms,
                status=CaseStatus.RUNTIME_ERROR,
            )
        return ExecutionResult(
            stdout=out.stdout,
            stderr=out.stderr,
            duration_ms=out.duration_ms,
            status=derive_status(out.exit_code, out.signal, out.overflow),
        )

    async def run_raw(self, command: Command, args: Sequence[str | Path] = ()) -> RawExecutionResult:
        """Run to completion without stdin piping or limits."""
        argv = _argv(command) + [os.fspath(a) for a in args]
        out = await _execute(argv, None, None, None)
        return RawExecutionResult(
            stdout=out.stdout,
            stderr=out.stderr,
            exit_code=out.exit_code,
            signal=out.signal,
            spawn_error=out.spawn_error,
            duration_ms=out.duration_ms,
        )


async def _execute(
    argv: list[str],
    stdin_text: str | None,
    timeout_s: float | None,
    max_bytes: int | None,
) -> _Outcome:
    log.debug("spawning %s (timeout=%ss, max_bytes=%s)", argv, timeout_s, max_bytes)
    start = time.perf_counter()
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE if stdin_text is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            # own process group, so a kill also reaches anything the child spawned
            start_new_session=True,
        )
    except OSError as ex:
        log.debug("spawn of %s failed: %s", argv[0], ex)
        return _Outcome(spawn_error=str(ex), duration_ms=_elapsed_ms(start))

    capture = _Capture(max_bytes)
    killed = False

    def _terminate() -> None:
        nonlocal killed
        if proc.returncode is None and not killed:
            killed = True
            _signal_group(proc, signal.SIGTERM)

    async def _pump(stream: asyncio.StreamReader, buf: bytearray) -> None:
        while True:
            chunk = await stream.read(_READ_CHUNK)
            if not chunk:
                return
            if capture.add(buf, chunk):
                _terminate()
                return

    async def _feed() -> None:
        assert proc.stdin is not None
        try:
            if stdin_text:
                proc.stdin.write(stdin_text.encode("utf-8"))
                await proc.stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            # the child exited without reading all of its input
            pass
        finally:
            proc.stdin.close()

    assert proc.stdout is not None and proc.stderr is not None
    tasks = [_pump(proc.stdout, capture.stdout), _pump(proc.stderr, capture.stderr)]
    if stdin_text is not None:
        tasks.append(_feed())

    try:
        await asyncio.wait_for(asyncio.gather(*tasks, proc.wait()), timeout=timeout_s)
    except asyncio.TimeoutError:
        log.debug("%s exceeded %ss, terminating", argv[0], timeout_s)
        _terminate()

    if proc.returncode is None:
        try:
            await asyncio.wait_for(proc.wait(), timeout=_KILL_GRACE_S)
        except asyncio.TimeoutError:
            _signal_group(proc, signal.SIGKILL)
            await proc.wait()
    duration_ms = _elapsed_ms(start)
    if killed:
        # stragglers left in the group still hold the pipes open
        _signal_group(proc, signal.SIGKILL)
    await _drain(proc)

    rc = proc.returncode
    if killed:
        sig_name: str | None = TIMEOUT_SIGNAL
    elif rc is not None and rc < 0:
        sig_name = _signal_name(-rc)
    else:
        sig_name = None

    return _Outcome(
        stdout=_decode(capture.stdout),
        stderr=_decode(capture.stderr),
        exit_code=rc if rc is None or rc >= 0 else None,
        signal=sig_name,
        overflow=capture.overflow,
        duration_ms=duration_ms,
    )


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def _signal_group(proc: asyncio.subprocess.Process, sig: signal.Signals) -> None:
    try:
        os.killpg(proc.pid, sig)
    except ProcessLookupError:
        pass
    except PermissionError:
        # group already gone and its id reused; fall back to the child itself
        try:
            proc.send_signal(sig)
        except ProcessLookupError:
            pass


async def _drain(proc: asyncio.subprocess.Process) -> None:
    """Read both pipes to EOF, discarding what is left, so their transports close."""
    for stream in (proc.stdout, proc.stderr):
        if stream is None or stream.at_eof():
            continue
        try:
            await asyncio.wait_for(stream.read(), timeout=_KILL_GRACE_S)
        except asyncio.TimeoutError:
            log.warning("pipe of pid %s still open after the process exited", proc.pid)
