"""Tests for agents.oracle — the stream is faked, no API calls are made."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest

from agents.oracle import AnthropicOracle, ClaudeCodeOracle, GenerationOracle, OracleEvent, get_oracle


def _fake_stream(*chunks):
    calls = []

    async def stream_text(system_prompt, prompt, max_tokens=None):
        calls.append((system_prompt, prompt, max_tokens))
        for chunk in chunks:
            yield chunk

    stream_text.calls = calls
    return stream_text


def test_anthropic_oracle_concatenates_stream():
    fake = _fake_stream("```python:src/a.py\n", "x = 1\n", "```")
    with patch("agents.oracle.stream_text", fake):
        text = asyncio.run(AnthropicOracle(max_tokens=1000).complete("build it", timeout=5))
    assert text == "```python:src/a.py\nx = 1\n```"
    system_prompt, prompt, max_tokens = fake.calls[0]
    assert prompt == "build it"
    assert max_tokens == 1000
    assert system_prompt.strip()


def test_anthropic_oracle_ends_with_done_event():
    async def events():
        return [e async for e in AnthropicOracle(system_prompt="sys").query("p")]

    with patch("agents.oracle.stream_text", _fake_stream("a", "b")):
        result = asyncio.run(events())
    assert result == [OracleEvent("text", "a"), OracleEvent("text", "b"), OracleEvent("done")]


class _SlowOracle(GenerationOracle):
    async def query(self, prompt, turn_budget=1, cwd=None):
        await asyncio.sleep(5)
        yield OracleEvent(type="text", text="late")


def test_complete_times_out():
    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(_SlowOracle().complete("p", timeout=0.05))


def test_complete_defaults_to_request_timeout(monkeypatch):
    monkeypatch.setenv("AUTOCODER_ENV", "production")
    seen = {}

    async def fake_wait_for(awaitable, timeout):
        seen["timeout"] = timeout
        return await awaitable

    with patch("agents.oracle.stream_text", _fake_stream("ok")), \
         patch("agents.oracle.asyncio.wait_for", fake_wait_for):
        assert asyncio.run(AnthropicOracle().complete("p")) == "ok"
    assert seen["timeout"] == 60


class _Text:
    def __init__(self, text):
        self.text = text


class _Assistant:
    def __init__(self, *blocks):
        self.content = list(blocks)


class _Result:
    def __init__(self, is_error=False, result=""):
        self.is_error = is_error
        self.result = result


def test_claude_code_oracle_yields_assistant_text(tmp_path):
    options = MagicMock(name="ClaudeAgentOptions")

    async def fake_query(prompt, options):
        yield _Assistant(_Text("Wrote "), object(), _Text("files"))
        yield _Result(is_error=True, result="max turns")

    with patch("claude_agent_sdk.query", fake_query), \
         patch("claude_agent_sdk.AssistantMessage", _Assistant), \
         patch("claude_agent_sdk.ResultMessage", _Result), \
         patch("claude_agent_sdk.TextBlock", _Text), \
         patch("claude_agent_sdk.ClaudeAgentOptions", options):
        oracle = ClaudeCodeOracle(system_prompt="sys")
        text = asyncio.run(oracle.complete("fix it", turn_budget=3, cwd=str(tmp_path), timeout=5))

    assert text == "Wrote files"
    kwargs = options.call_args.kwargs
    assert kwargs["max_turns"] == 3
    assert kwargs["cwd"] == str(tmp_path)
    assert kwargs["permission_mode"] == "acceptEdits"
    assert "Write" in kwargs["allowed_tools"]
    assert kwargs["disallowed_tools"] == []


def test_edits_in_place_flags():
    assert AnthropicOracle.edits_in_place is False
    assert ClaudeCodeOracle.edits_in_place is True


def test_get_oracle():
    assert isinstance(get_oracle("anthropic"), AnthropicOracle)
    assert isinstance(get_oracle("claude-code"), ClaudeCodeOracle)
    with pytest.raises(ValueError, match="Unknown oracle"):
        get_oracle("gpt")


def test_claude_code_oracle_without_cwd_is_text_only():
    options = MagicMock(name="ClaudeAgentOptions")

    async def fake_query(prompt, options):
        yield _Assistant(_Text("- no issues"))

    with patch("claude_agent_sdk.query", fake_query), \
         patch("claude_agent_sdk.AssistantMessage", _Assistant), \
         patch("claude_agent_sdk.ResultMessage", _Result), \
         patch("claude_agent_sdk.TextBlock", _Text), \
         patch("claude_agent_sdk.ClaudeAgentOptions", options):
        text = asyncio.run(ClaudeCodeOracle().complete("review this", timeout=5))

    assert text == "- no issues"
    kwargs = options.call_args.kwargs
    assert kwargs["cwd"] is None
    assert kwargs["allowed_tools"] == []
    assert "Write" in kwargs["disallowed_tools"]
    assert "Bash" in kwargs["disallowed_tools"]
    assert kwargs["permission_mode"] != "acceptEdits"
