"""Command auto-reply pipeline.

Builds the command for one inbound message, runs it through the command
queue, and turns whatever happened into a ``CommandReplyResult``. Nothing
raised inside the pipeline escapes ``run_command_reply``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from loguru import logger

from .agent import AGENT_IDENTITY_PREFIX, is_agent_command, summarize_metadata
from .argv import build_command_argv
from .config import ReplyConfig
from .media import filter_media_by_size, split_media_from_output
from .output import InterpretedOutput, interpret_output
from .process import CommandRunner, Enqueue, enqueue_command, run_command_with_timeout
from .templating import TemplateContext
from .types import CommandFailure, CommandReplyResult, CommandResult, ExecutionOutcome, ReplyMeta, ReplyPayload

NO_OUTPUT_TEXT = "command produced no output"
PARTIAL_OUTPUT_LIMIT = 800


@dataclass
class _QueueStats:
    queued_ms: int | None = None
    queued_ahead: int | None = None

    def on_wait(self, waited_ms: int, ahead: int) -> None:
        self.queued_ms = waited_ms
        self.queued_ahead = ahead
        logger.debug("command.reply.queued waited_ms={} ahead={}", waited_ms, ahead)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _log_stderr(stderr: str | None) -> None:
    if stderr and stderr.strip():
        logger.debug("command.reply.stderr output={}", stderr.strip())


def _cwd_note(reply: ReplyConfig) -> str:
    return f" (cwd: {reply.cwd})" if reply.cwd else ""


def timeout_text(reply: ReplyConfig, timeout_seconds: int, partial_stdout: str | None) -> str:
    """User-facing notice for a command killed at its deadline."""
    base = (
        f"Command timed out after {timeout_seconds}s{_cwd_note(reply)}. "
        "Try a shorter prompt or split the request."
    )
    partial = (partial_stdout or "").strip()
    if not partial:
        return base
    if len(partial) > PARTIAL_OUTPUT_LIMIT:
        partial = f"{partial[:PARTIAL_OUTPUT_LIMIT]}..."
    return f"{base}\n\nPartial output before timeout:\n{partial}"


def no_output_text(summary: str | None) -> str:
    return f"({NO_OUTPUT_TEXT}; {summary})" if summary else f"({NO_OUTPUT_TEXT})"


async def run_command_reply(
    *,
    reply: ReplyConfig,
    templating_ctx: TemplateContext,
    send_system_once: bool = False,
    is_new_session: bool = False,
    is_first_turn_in_session: bool = False,
    system_sent: bool = False,
    timeout_seconds: int | None = None,
    timeout_ms: int | None = None,
    command_runner: CommandRunner = run_command_with_timeout,
    enqueue: Enqueue = enqueue_command,
    identity_prefix: str = AGENT_IDENTITY_PREFIX,
) -> CommandReplyResult:
    """Run the configured reply command for one message and classify the result."""
    if timeout_seconds is None:
        timeout_seconds = reply.timeout_seconds
    if timeout_ms is None:
        timeout_ms = timeout_seconds * 1000

    started = time.monotonic()
    stats = _QueueStats()
    try:
        argv = build_command_argv(
            reply,
            templating_ctx,
            send_system_once=send_system_once,
            is_new_session=is_new_session,
            is_first_turn_in_session=is_first_turn_in_session,
            system_sent=system_sent,
            identity_prefix=identity_prefix,
        )

        async def _work() -> CommandResult:
            return await command_runner(argv, timeout_ms=timeout_ms, cwd=reply.cwd)

        result = await enqueue(_work, on_wait=stats.on_wait)
        if isinstance(result, CommandFailure):
            return _classify_failure(result, reply, started, stats, timeout_seconds, timeout_ms)
        return await _classify_outcome(result, reply, started, stats, agent_invocation=is_agent_command(argv))
    except Exception as exc:
        elapsed = _elapsed_ms(started)
        logger.error("command.reply.failed elapsed_ms={} error={!s}", elapsed, exc)
        return CommandReplyResult(
            payload=None,
            meta=ReplyMeta(duration_ms=elapsed, queued_ms=stats.queued_ms, queued_ahead=stats.queued_ahead),
        )


def _meta_for_outcome(
    outcome: ExecutionOutcome, started: float, stats: _QueueStats, interpreted: InterpretedOutput
) -> ReplyMeta:
    structured = interpreted.structured
    return ReplyMeta(
        duration_ms=_elapsed_ms(started),
        queued_ms=stats.queued_ms,
        queued_ahead=stats.queued_ahead,
        exit_code=outcome.code,
        signal=outcome.signal,
        killed=outcome.killed,
        agent_meta=summarize_metadata(structured.parsed) if structured is not None else None,
    )


async def _classify_outcome(
    outcome: ExecutionOutcome,
    reply: ReplyConfig,
    started: float,
    stats: _QueueStats,
    *,
    agent_invocation: bool,
) -> CommandReplyResult:
    _log_stderr(outcome.stderr)
    interpreted = interpret_output(outcome.stdout, reply.claude_output_format, agent_invocation=agent_invocation)

    if (outcome.code or 0) != 0:
        logger.error(
            "command.reply.exit_nonzero code={} signal={}",
            outcome.code,
            outcome.signal or "none",
        )
        return CommandReplyResult(payload=None, meta=_meta_for_outcome(outcome, started, stats, interpreted))
    if outcome.killed and not outcome.signal:
        logger.error(
            "command.reply.killed_before_completion code={}",
            "unknown" if outcome.code is None else outcome.code,
        )
        return CommandReplyResult(payload=None, meta=_meta_for_outcome(outcome, started, stats, interpreted))

    split = split_media_from_output(interpreted.text)
    text = split.text
    if split.media_urls:
        logger.debug("command.reply.media.extracted urls={}", list(split.media_urls))
    if not text and not split.media_urls:
        summary = summarize_metadata(interpreted.structured.parsed) if interpreted.structured else None
        text = no_output_text(summary)
        logger.debug("command.reply.no_output fallback={!r}", text)

    media_urls = split.media_urls or ((reply.media_url,) if reply.media_url else None)
    if media_urls and reply.media_max_mb:
        media_urls = await filter_media_by_size(media_urls, reply.media_max_mb) or None

    payload = None
    if text or media_urls:
        payload = ReplyPayload(
            text=text or None,
            media_url=media_urls[0] if media_urls else None,
            media_urls=media_urls,
        )
    meta = _meta_for_outcome(outcome, started, stats, interpreted)
    logger.debug("command.reply.finished duration_ms={} meta={}", meta.duration_ms, meta)
    return CommandReplyResult(payload=payload, meta=meta)


def _classify_failure(
    failure: CommandFailure,
    reply: ReplyConfig,
    started: float,
    stats: _QueueStats,
    timeout_seconds: int,
    timeout_ms: int,
) -> CommandReplyResult:
    elapsed = _elapsed_ms(started)
    _log_stderr(failure.stderr)
    meta = ReplyMeta(
        duration_ms=elapsed,
        queued_ms=stats.queued_ms,
        queued_ahead=stats.queued_ahead,
        signal=failure.signal,
        killed=failure.killed,
    )
    if failure.timed_out:
        logger.error("command.reply.timeout elapsed_ms={} limit_ms={}", elapsed, timeout_ms)
        return CommandReplyResult(
            payload=ReplyPayload(text=timeout_text(reply, timeout_seconds, failure.stdout)),
            meta=meta,
        )
    logger.error("command.reply.failed elapsed_ms={} error={!s}", elapsed, failure)
    return CommandReplyResult(payload=None, meta=meta)
