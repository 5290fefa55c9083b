from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from cmdreply.process import run_command_with_timeout
from cmdreply.types import CommandFailure, ExecutionOutcome


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


@pytest.mark.asyncio
async def test_successful_run_captures_output() -> None:
    result = await run_command_with_timeout(
        _python("import sys; print('hi'); print('warn', file=sys.stderr)"),
        timeout_ms=10_000,
    )

    assert isinstance(result, ExecutionOutcome)
    assert result.stdout.strip() == "hi"
    assert result.stderr.strip() == "warn"
    assert result.code == 0
    assert result.signal is None
    assert result.killed is False


@pytest.mark.asyncio
async def test_nonzero_exit_is_an_outcome() -> None:
    result = await run_command_with_timeout(_python("raise SystemExit(3)"), timeout_ms=10_000)

    assert isinstance(result, ExecutionOutcome)
    assert result.code == 3


@pytest.mark.asyncio
async def test_runs_in_requested_cwd(tmp_path: Path) -> None:
    result = await run_command_with_timeout(_python("import os; print(os.getcwd())"), timeout_ms=10_000, cwd=str(tmp_path))

    assert isinstance(result, ExecutionOutcome)
    assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()


@pytest.mark.asyncio
async def test_deadline_kills_process_and_keeps_partial_output() -> None:
    result = await run_command_with_timeout(
        _python("import sys, time; print('partial-output', flush=True); time.sleep(30)"),
        timeout_ms=1500,
    )

    assert isinstance(result, CommandFailure)
    assert result.killed is True
    assert result.signal == "SIGKILL"
    assert result.timed_out
    assert "partial-output" in result.stdout


@pytest.mark.skipif(os.name != "posix", reason="signals are POSIX-only")
@pytest.mark.asyncio
async def test_signal_termination_reports_signal_name() -> None:
    result = await run_command_with_timeout(
        _python("import os, signal; os.kill(os.getpid(), signal.SIGTERM)"),
        timeout_ms=10_000,
    )

    assert isinstance(result, ExecutionOutcome)
    assert result.code is None
    assert result.signal == "SIGTERM"


@pytest.mark.asyncio
async def test_missing_executable_is_a_failure(tmp_path: Path) -> None:
    result = await run_command_with_timeout([str(tmp_path / "no-such-binary")], timeout_ms=1000)

    assert isinstance(result, CommandFailure)
    assert result.killed is False
    assert not result.timed_out
    assert result.error is not None
    assert "failed to start command" in str(result)
