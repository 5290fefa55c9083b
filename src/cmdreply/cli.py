"""Command-line interface for running one reply by hand."""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

import typer

from cmdreply.argv import build_command_argv
from cmdreply.command_reply import run_command_reply
from cmdreply.config import ReplyConfig, Settings, get_settings, load_reply_config
from cmdreply.errors import ConfigurationError
from cmdreply.logging_utils import configure_logging
from cmdreply.process import CommandQueue

app = typer.Typer(name="cmdreply", help="Reply to a message by running a command", add_completion=False)


def _parse_vars(pairs: list[str]) -> dict[str, str]:
    parsed: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--var")
        parsed[key.strip()] = value
    return parsed


def _build_context(body: str, session_id: str | None, is_new_session: bool, pairs: list[str]) -> dict[str, str]:
    ctx = {"Body": body, "IsNewSession": "true" if is_new_session else "false"}
    if session_id:
        ctx["SessionId"] = session_id
    ctx.update(_parse_vars(pairs))
    return ctx


def _load(config: Path | None, settings: Settings) -> ReplyConfig:
    try:
        return load_reply_config(config or settings.config_path)
    except ConfigurationError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(1) from exc


def _to_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


@app.command("argv")
def show_argv(
    body: str = typer.Argument(..., help="Inbound message body"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Reply config file"),  # noqa: B008
    session_id: str | None = typer.Option(None, "--session-id", help="Session id"),
    new_session: bool = typer.Option(False, "--new-session/--resume", help="Start or resume the session"),
    first_turn: bool = typer.Option(False, "--first-turn", help="First turn in the session"),
    system_sent: bool = typer.Option(False, "--system-sent", help="System prefix already sent"),
    send_system_once: bool = typer.Option(False, "--send-system-once", help="Send the prefix once per session"),
    var: list[str] = typer.Option([], "--var", help="Extra template value as KEY=VALUE"),  # noqa: B008
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Print the command that would run, without running it."""

    settings = get_settings()
    configure_logging(profile="cli", level=settings.log_level, verbose=verbose)
    reply = _load(config, settings)
    argv = build_command_argv(
        reply,
        _build_context(body, session_id, new_session, var),
        send_system_once=send_system_once,
        is_new_session=new_session,
        is_first_turn_in_session=first_turn,
        system_sent=system_sent,
    )
    typer.echo(_to_json(list(argv)))


@app.command("run")
def run(
    body: str = typer.Argument(..., help="Inbound message body"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Reply config file"),  # noqa: B008
    session_id: str | None = typer.Option(None, "--session-id", help="Session id"),
    new_session: bool = typer.Option(False, "--new-session/--resume", help="Start or resume the session"),
    first_turn: bool = typer.Option(False, "--first-turn", help="First turn in the session"),
    system_sent: bool = typer.Option(False, "--system-sent", help="System prefix already sent"),
    send_system_once: bool = typer.Option(False, "--send-system-once", help="Send the prefix once per session"),
    var: list[str] = typer.Option([], "--var", help="Extra template value as KEY=VALUE"),  # noqa: B008
    timeout: int | None = typer.Option(None, "--timeout", "-t", min=1, help="Timeout in seconds"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Run the reply command for one message and print the payload and meta."""

    settings = get_settings()
    configure_logging(profile="cli", level=settings.log_level, verbose=verbose)
    reply = _load(config, settings)
    queue = CommandQueue(max_concurrent=settings.queue_max_concurrent, warn_after_ms=settings.queue_warn_after_ms)

    result = asyncio.run(
        run_command_reply(
            reply=reply,
            templating_ctx=_build_context(body, session_id, new_session, var),
            send_system_once=send_system_once,
            is_new_session=new_session,
            is_first_turn_in_session=first_turn,
            system_sent=system_sent,
            timeout_seconds=timeout,
            enqueue=queue.enqueue,
        )
    )
    payload = asdict(result.payload) if result.payload is not None else None
    typer.echo(_to_json({"payload": payload, "meta": asdict(result.meta)}))
