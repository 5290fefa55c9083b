"""Execution and reply data types."""

from __future__ import annotations

from typing import TypeAlias

from dataclasses import dataclass


@dataclass(frozen=True)
class ExecutionOutcome:
    """A process that ran to completion before its deadline."""

    stdout: str
    stderr: str
    code: int | None
    signal: str | None = None
    killed: bool = False


@dataclass(frozen=True)
class CommandFailure:
    """A process that was killed at its deadline or could not be run."""

    stdout: str = ""
    stderr: str = ""
    killed: bool = False
    signal: str | None = None
    error: str | None = None

    @property
    def timed_out(self) -> bool:
        return self.killed or self.signal == "SIGKILL"

    def __str__(self) -> str:
        if self.error:
            return self.error
        return f"command failed (killed={self.killed}, signal={self.signal or 'none'})"


CommandResult: TypeAlias = ExecutionOutcome | CommandFailure


@dataclass(frozen=True)
class ReplyPayload:
    """Normalized reply handed back to the caller for delivery."""

    text: str | None = None
    media_url: str | None = None
    media_urls: tuple[str, ...] | None = None


@dataclass(frozen=True)
class ReplyMeta:
    """Telemetry for one command invocation."""

    duration_ms: int
    queued_ms: int | None = None
    queued_ahead: int | None = None
    exit_code: int | None = None
    signal: str | None = None
    killed: bool | None = None
    agent_meta: str | None = None


@dataclass(frozen=True)
class CommandReplyResult:
    payload: ReplyPayload | None
    meta: ReplyMeta
