"""Command-line construction for command auto-replies.

Every step takes the argv built so far and returns a new tuple, so each
insertion can be checked against a known "before" sequence.
"""

from __future__ import annotations

from typing import TypeAlias

from collections.abc import Sequence

from loguru import logger

from .agent import AGENT_IDENTITY_PREFIX, is_agent_command
from .config import ReplyConfig, SessionArgsConfig
from .templating import TemplateContext, apply_template

Argv: TypeAlias = tuple[str, ...]

DEFAULT_SESSION_ARG_NEW = ("--session-id", "{{SessionId}}")
DEFAULT_SESSION_ARG_RESUME = ("--resume", "{{SessionId}}")
OUTPUT_FORMAT_FLAG = "--output-format"
PRINT_FLAGS = frozenset({"-p", "--print"})


def insert_at(argv: Argv, index: int, items: Sequence[str]) -> Argv:
    return (*argv[:index], *items, *argv[index:])


def render_command(command: Sequence[str], ctx: TemplateContext) -> Argv:
    return tuple(apply_template(part, ctx) for part in command)


def insert_template_prefix(
    argv: Argv,
    reply: ReplyConfig,
    ctx: TemplateContext,
    *,
    send_system_once: bool,
    is_first_turn_in_session: bool,
    system_sent: bool,
) -> Argv:
    """Insert the rendered prefix template as the second argument."""
    if not reply.template or not argv:
        return argv
    if send_system_once and not is_first_turn_in_session and system_sent:
        return argv
    prefix = apply_template(reply.template, ctx)
    if not prefix:
        return argv
    return insert_at(argv, 1, (prefix,))


def ensure_output_format_flags(argv: Argv, output_format: str | None) -> Argv:
    """Make sure agent invocations carry ``--output-format`` and a print flag."""
    if not output_format or not is_agent_command(argv):
        return argv
    has_output_format = any(
        part == OUTPUT_FORMAT_FLAG or part.startswith(f"{OUTPUT_FORMAT_FLAG}=") for part in argv
    )
    if not has_output_format:
        argv = insert_at(argv, max(len(argv) - 1, 0), (OUTPUT_FORMAT_FLAG, output_format))
    if not any(part in PRINT_FLAGS for part in argv):
        argv = insert_at(argv, max(len(argv) - 1, 0), ("-p",))
    return argv


def insert_session_args(
    argv: Argv,
    session: SessionArgsConfig | None,
    ctx: TemplateContext,
    *,
    is_new_session: bool,
) -> Argv:
    """Add the new-session or resume arguments, before the body by default."""
    if session is None:
        return argv
    if is_new_session:
        template = session.session_arg_new if session.session_arg_new is not None else DEFAULT_SESSION_ARG_NEW
    else:
        template = (
            session.session_arg_resume if session.session_arg_resume is not None else DEFAULT_SESSION_ARG_RESUME
        )
    session_args = render_command(template, ctx)
    if not session_args:
        return argv
    insert_idx = len(argv) - 1 if session.session_arg_before_body and len(argv) > 1 else len(argv)
    return insert_at(argv, insert_idx, session_args)


def apply_identity_prefix(argv: Argv, identity_prefix: str = AGENT_IDENTITY_PREFIX) -> Argv:
    """Prefix the agent's body argument with the identity framing."""
    if not is_agent_command(argv):
        return argv
    body = argv[-1]
    return (*argv[:-1], "\n\n".join(part for part in (identity_prefix, body) if part))


def build_command_argv(
    reply: ReplyConfig,
    ctx: TemplateContext,
    *,
    send_system_once: bool = False,
    is_new_session: bool = False,
    is_first_turn_in_session: bool = False,
    system_sent: bool = False,
    identity_prefix: str = AGENT_IDENTITY_PREFIX,
) -> Argv:
    argv = render_command(reply.command, ctx)
    argv = insert_template_prefix(
        argv,
        reply,
        ctx,
        send_system_once=send_system_once,
        is_first_turn_in_session=is_first_turn_in_session,
        system_sent=system_sent,
    )
    argv = ensure_output_format_flags(argv, reply.claude_output_format)
    argv = insert_session_args(argv, reply.session, ctx, is_new_session=is_new_session)
    argv = apply_identity_prefix(argv, identity_prefix)
    logger.debug(
        "command.reply.argv command={} cwd={}",
        " ".join(argv),
        reply.cwd or "<inherit>",
    )
    return argv
