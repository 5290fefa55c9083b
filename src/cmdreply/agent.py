"""Agent tool constants, JSON output decoding and metadata summaries."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import PurePath
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

AGENT_BIN = "claude"
AGENT_IDENTITY_PREFIX = (
    "You are Claude answering an inbound chat message through an auto-reply bridge. "
    "Keep replies short enough to read on a phone. "
    "To attach an image, audio clip or document, print a line of the form MEDIA:<path-or-url>."
)
STRUCTURED_OUTPUT_FORMAT = "json"

_TEXT_FIELDS = ("result", "text", "completion", "output")


def is_agent_command(argv: tuple[str, ...] | list[str]) -> bool:
    """Return whether the executable's basename is the agent tool."""
    return bool(argv) and PurePath(argv[0]).name == AGENT_BIN


@dataclass(frozen=True)
class AgentJsonResult:
    parsed: Any
    text: str | None = None


def extract_agent_text(payload: Any) -> str | None:
    """Find the display text inside one decoded agent payload."""
    if payload is None:
        return None
    if isinstance(payload, str):
        return payload
    if isinstance(payload, list):
        for item in payload:
            if text := extract_agent_text(item):
                return text
        return None
    if not isinstance(payload, Mapping):
        return None

    for key in _TEXT_FIELDS:
        if isinstance(value := payload.get(key), str):
            return value
    for key in ("message", "messages"):
        if (value := payload.get(key)) is not None and (text := extract_agent_text(value)):
            return text
    content = payload.get("content")
    if isinstance(content, list):
        for block in content:
            if isinstance(block, Mapping) and block.get("type") == "text" and isinstance(block.get("text"), str):
                return block["text"]
            if text := extract_agent_text(block):
                return text
    return None


def parse_agent_json(raw: str) -> AgentJsonResult | None:
    """Decode agent stdout as one JSON document or newline-delimited JSON.

    The first candidate carrying display text wins. If none carries text, the
    first value that decoded is returned without text. ``None`` means nothing
    decoded at all.
    """
    candidates = [raw, *(line.strip() for line in raw.splitlines() if line.strip())]
    first_parsed: Any = None
    decoded_any = False
    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if not decoded_any:
            first_parsed = parsed
            decoded_any = True
        if text := extract_agent_text(parsed):
            return AgentJsonResult(parsed=parsed, text=text)
    if not decoded_any:
        return None
    return AgentJsonResult(parsed=first_parsed, text=extract_agent_text(first_parsed))


def _number_or_none(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return value


def _mapping_or_none(value: Any) -> Any:
    return value if isinstance(value, Mapping) else None


_Number = Annotated[int | float | None, BeforeValidator(_number_or_none)]
_AnyMapping = Annotated[dict[str, Any] | None, BeforeValidator(_mapping_or_none)]


class _Usage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    server_tool_use: _AnyMapping = None


class AgentRunMetadata(BaseModel):
    """Optional run statistics reported by the agent's JSON output."""

    model_config = ConfigDict(extra="ignore")

    duration_ms: _Number = None
    duration_api_ms: _Number = None
    num_turns: _Number = None
    total_cost_usd: _Number = None
    usage: Annotated[_Usage | None, BeforeValidator(_mapping_or_none)] = None
    model_usage: _AnyMapping = Field(default=None, alias="modelUsage")

    def tool_calls(self) -> int | float:
        if self.usage is None or not self.usage.server_tool_use:
            return 0
        return sum(
            value for value in self.usage.server_tool_use.values() if _number_or_none(value) is not None
        )


def format_number(value: int | float) -> str:
    """Render a number the way JSON wrote it, without a trailing ``.0``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def summarize_metadata(payload: Any) -> str | None:
    """Summarize agent run statistics on one line, or ``None`` when there are none."""
    if not isinstance(payload, Mapping):
        return None
    meta = AgentRunMetadata.model_validate(dict(payload))
    parts: list[str] = []

    if meta.duration_ms is not None:
        parts.append(f"duration={format_number(meta.duration_ms)}ms")
    if meta.duration_api_ms is not None:
        parts.append(f"api={format_number(meta.duration_api_ms)}ms")
    if meta.num_turns is not None:
        parts.append(f"turns={format_number(meta.num_turns)}")
    if meta.total_cost_usd is not None:
        parts.append(f"cost=${meta.total_cost_usd:.4f}")

    tool_calls = meta.tool_calls()
    if tool_calls > 0:
        parts.append(f"tool_calls={format_number(tool_calls)}")

    if meta.model_usage:
        models = list(meta.model_usage)
        display = ",".join(models[:2]) + (f"+{len(models) - 2}" if len(models) > 2 else "")
        parts.append(f"models={display}")

    return ", ".join(parts) if parts else None
