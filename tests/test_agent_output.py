from __future__ import annotations

import json

import pytest

from cmdreply.agent import is_agent_command, parse_agent_json, summarize_metadata
from cmdreply.output import interpret_output


def test_summarize_metadata_reads_all_known_fields() -> None:
    payload = {
        "duration_ms": 1200,
        "duration_api_ms": 800.0,
        "num_turns": 3,
        "total_cost_usd": 0.01234,
        "usage": {"server_tool_use": {"web_search_requests": 2, "web_fetch_requests": 1, "note": "x"}},
        "modelUsage": {"model-a": {}, "model-b": {}, "model-c": {}},
    }

    assert summarize_metadata(payload) == (
        "duration=1200ms, api=800ms, turns=3, cost=$0.0123, tool_calls=3, models=model-a,model-b+1"
    )


def test_summarize_metadata_two_models_listed_in_full() -> None:
    assert summarize_metadata({"modelUsage": {"a": {}, "b": {}}}) == "models=a,b"


def test_summarize_metadata_ignores_mistyped_fields() -> None:
    payload = {
        "duration_ms": "fast",
        "num_turns": 2,
        "total_cost_usd": True,
        "usage": "none",
        "modelUsage": ["a"],
    }

    assert summarize_metadata(payload) == "turns=2"


def test_summarize_metadata_skips_zero_tool_calls() -> None:
    assert summarize_metadata({"usage": {"server_tool_use": {"web_search_requests": 0}}}) is None


@pytest.mark.parametrize("payload", [None, "text", 42, [1, 2], {}, {"result": "only text"}])
def test_summarize_metadata_returns_none_without_fields(payload: object) -> None:
    assert summarize_metadata(payload) is None


def test_parse_agent_json_single_document() -> None:
    result = parse_agent_json('{"result":"Hello","duration_ms":120}')

    assert result is not None
    assert result.text == "Hello"
    assert result.parsed["duration_ms"] == 120


def test_parse_agent_json_newline_delimited() -> None:
    raw = "\n".join(
        [
            json.dumps({"type": "system", "subtype": "init"}),
            json.dumps({"type": "assistant", "message": {"content": [{"type": "text", "text": "working"}]}}),
            json.dumps({"type": "result", "result": "done"}),
        ]
    )

    result = parse_agent_json(raw)

    assert result is not None
    assert result.text == "working"


def test_parse_agent_json_without_text_keeps_first_value() -> None:
    result = parse_agent_json("42")

    assert result is not None
    assert result.parsed == 42
    assert result.text is None


def test_parse_agent_json_plain_text_is_none() -> None:
    assert parse_agent_json("Hello there, no JSON here") is None


def test_interpret_output_uses_decoded_text_for_json_format() -> None:
    interpreted = interpret_output('  {"result":" Hello ","duration_ms":120}\n', "json", agent_invocation=False)

    assert interpreted.text == "Hello"
    assert interpreted.structured is not None
    assert "duration=120ms" in (summarize_metadata(interpreted.structured.parsed) or "")


def test_interpret_output_falls_back_to_raw_on_decode_miss() -> None:
    interpreted = interpret_output("  plain answer \n", None, agent_invocation=True)

    assert interpreted.text == "plain answer"
    assert interpreted.structured is None


def test_interpret_output_skips_decoding_for_plain_commands() -> None:
    interpreted = interpret_output('{"result":"Hello"}', None, agent_invocation=False)

    assert interpreted.text == '{"result":"Hello"}'
    assert interpreted.structured is None


def test_is_agent_command_matches_basename() -> None:
    assert is_agent_command(("/opt/homebrew/bin/claude", "hi"))
    assert not is_agent_command(("claude-code", "hi"))
    assert not is_agent_command(())


def test_summarize_metadata_reads_only_camel_case_model_usage() -> None:
    assert summarize_metadata({"model_usage": {"a": {}}}) is None
