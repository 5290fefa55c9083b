"""Run one command with a deadline."""

from __future__ import annotations

import asyncio
import signal
from asyncio.subprocess import DEVNULL, PIPE, Process
from collections.abc import Sequence
from contextlib import suppress
from typing import Protocol

from loguru import logger

from ..types import CommandFailure, CommandResult, ExecutionOutcome

_READ_CHUNK = 65536
_KILL_DRAIN_SECONDS = 1.0


class CommandRunner(Protocol):
    async def __call__(self, argv: Sequence[str], *, timeout_ms: int, cwd: str | None = None) -> CommandResult: ...


def _signal_name(returncode: int | None) -> str | None:
    if returncode is None or returncode >= 0:
        return None
    try:
        return signal.Signals(-returncode).name
    except ValueError:
        return f"SIG{-returncode}"


def _decode(buffer: bytearray) -> str:
    return buffer.decode("utf-8", errors="replace")


async def _drain(stream: asyncio.StreamReader | None, sink: bytearray) -> None:
    if stream is None:
        return
    while chunk := await stream.read(_READ_CHUNK):
        sink.extend(chunk)


async def _kill(process: Process, stdout: bytearray, stderr: bytearray) -> None:
    if process.returncode is None:
        with suppress(ProcessLookupError):
            process.kill()
    # Collect output still buffered in the pipes; bounded in case a grandchild holds them open.
    with suppress(TimeoutError):
        async with asyncio.timeout(_KILL_DRAIN_SECONDS):
            await asyncio.gather(_drain(process.stdout, stdout), _drain(process.stderr, stderr))
    await process.wait()


async def run_command_with_timeout(
    argv: Sequence[str],
    *,
    timeout_ms: int,
    cwd: str | None = None,
) -> CommandResult:
    """Run ``argv`` to completion, or kill it with SIGKILL after ``timeout_ms``.

    Returns an ``ExecutionOutcome`` when the process exits on its own and a
    ``CommandFailure`` when it was killed at the deadline or never started.
    Output read before a kill is kept on the failure.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            cwd=cwd,
            stdin=DEVNULL,
            stdout=PIPE,
            stderr=PIPE,
        )
    except (OSError, ValueError) as exc:
        logger.debug("command.exec.spawn_failed argv0={} error={}", argv[0] if argv else "<empty>", exc)
        return CommandFailure(error=f"failed to start command: {exc!s}")

    stdout = bytearray()
    stderr = bytearray()
    try:
        async with asyncio.timeout(timeout_ms / 1000):
            await asyncio.gather(_drain(process.stdout, stdout), _drain(process.stderr, stderr))
            await process.wait()
    except TimeoutError:
        await _kill(process, stdout, stderr)
        logger.debug("command.exec.killed pid={} timeout_ms={}", process.pid, timeout_ms)
        return CommandFailure(
            stdout=_decode(stdout),
            stderr=_decode(stderr),
            killed=True,
            signal="SIGKILL",
        )
    except asyncio.CancelledError:
        await _kill(process, stdout, stderr)
        raise

    returncode = process.returncode
    signal_name = _signal_name(returncode)
    return ExecutionOutcome(
        stdout=_decode(stdout),
        stderr=_decode(stderr),
        code=None if signal_name else returncode,
        signal=signal_name,
    )
