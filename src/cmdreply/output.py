"""Interpretation of command stdout."""

from __future__ import annotations

import json
from dataclasses import dataclass

from loguru import logger

from .agent import STRUCTURED_OUTPUT_FORMAT, AgentJsonResult, parse_agent_json

_PREVIEW_CHARS = 120


@dataclass(frozen=True)
class InterpretedOutput:
    text: str
    structured: AgentJsonResult | None = None


def should_decode(stdout: str, output_format: str | None, *, agent_invocation: bool) -> bool:
    return bool(stdout) and (output_format == STRUCTURED_OUTPUT_FORMAT or agent_invocation)


def interpret_output(stdout: str, output_format: str | None, *, agent_invocation: bool) -> InterpretedOutput:
    """Pick the working text out of stdout, decoding agent JSON when it applies.

    A decode miss is not an error; the trimmed raw stdout is used instead.
    """
    raw = stdout.strip()
    if not should_decode(raw, output_format, agent_invocation=agent_invocation):
        return InterpretedOutput(text=raw)

    structured = parse_agent_json(raw)
    if structured is not None:
        logger.opt(lazy=True).debug(
            "command.reply.json.raw payload={}", lambda: json.dumps(structured.parsed, indent=2, default=str)
        )
    if structured is None or not structured.text:
        logger.debug("command.reply.json.no_text fallback=raw")
        return InterpretedOutput(text=raw, structured=structured)

    text = structured.text.strip()
    logger.debug(
        "command.reply.json.parsed text={}",
        text[:_PREVIEW_CHARS] + ("…" if len(text) > _PREVIEW_CHARS else ""),
    )
    return InterpretedOutput(text=text, structured=structured)
