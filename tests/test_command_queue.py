from __future__ import annotations

import asyncio

import pytest

from cmdreply.process import CommandQueue, enqueue_command
from cmdreply.types import ExecutionOutcome


def _outcome(stdout: str) -> ExecutionOutcome:
    return ExecutionOutcome(stdout=stdout, stderr="", code=0)


@pytest.mark.asyncio
async def test_immediate_run_does_not_report_wait() -> None:
    queue = CommandQueue(warn_after_ms=0)
    waits: list[tuple[int, int]] = []

    async def work() -> ExecutionOutcome:
        return _outcome("done")

    result = await queue.enqueue(work, on_wait=lambda ms, ahead: waits.append((ms, ahead)))

    assert result == _outcome("done")
    assert waits == []
    assert queue.pending == 0


@pytest.mark.asyncio
async def test_queued_work_runs_in_order_and_reports_wait() -> None:
    queue = CommandQueue(max_concurrent=1, warn_after_ms=0)
    release = asyncio.Event()
    order: list[str] = []
    waits: list[tuple[int, int]] = []

    async def first() -> ExecutionOutcome:
        order.append("first")
        await release.wait()
        return _outcome("first")

    async def second() -> ExecutionOutcome:
        order.append("second")
        return _outcome("second")

    first_task = asyncio.create_task(queue.enqueue(first))
    await asyncio.sleep(0)
    second_task = asyncio.create_task(queue.enqueue(second, on_wait=lambda ms, ahead: waits.append((ms, ahead))))
    await asyncio.sleep(0.01)

    assert order == ["first"]
    assert queue.pending == 2
    release.set()

    assert (await first_task).stdout == "first"
    assert (await second_task).stdout == "second"
    assert order == ["first", "second"]
    assert len(waits) == 1
    assert waits[0][1] == 1
    assert waits[0][0] >= 0


@pytest.mark.asyncio
async def test_short_waits_below_threshold_are_not_reported() -> None:
    queue = CommandQueue(max_concurrent=1, warn_after_ms=60_000)
    release = asyncio.Event()
    waits: list[tuple[int, int]] = []

    async def blocker() -> ExecutionOutcome:
        await release.wait()
        return _outcome("a")

    async def quick() -> ExecutionOutcome:
        return _outcome("b")

    blocked = asyncio.create_task(queue.enqueue(blocker))
    await asyncio.sleep(0)
    queued = asyncio.create_task(queue.enqueue(quick, on_wait=lambda ms, ahead: waits.append((ms, ahead))))
    await asyncio.sleep(0)
    release.set()
    await asyncio.gather(blocked, queued)

    assert waits == []


@pytest.mark.asyncio
async def test_bounded_concurrency_allows_parallel_runs() -> None:
    queue = CommandQueue(max_concurrent=2)
    running = 0
    peak = 0

    async def work() -> ExecutionOutcome:
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1
        return _outcome("ok")

    await asyncio.gather(*(queue.enqueue(work) for _ in range(5)))

    assert peak == 2


@pytest.mark.asyncio
async def test_work_errors_propagate_and_release_the_slot() -> None:
    queue = CommandQueue()

    async def broken() -> ExecutionOutcome:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await queue.enqueue(broken)

    async def fine() -> ExecutionOutcome:
        return _outcome("after")

    assert (await queue.enqueue(fine)).stdout == "after"
    assert queue.pending == 0


@pytest.mark.asyncio
async def test_enqueue_command_uses_default_queue() -> None:
    async def work() -> ExecutionOutcome:
        return _outcome("default")

    assert (await enqueue_command(work)).stdout == "default"


def test_max_concurrent_must_be_positive() -> None:
    with pytest.raises(ValueError):
        CommandQueue(max_concurrent=0)
