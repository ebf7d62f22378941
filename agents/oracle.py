"""Generation oracles — turn a prompt into text and, for agentic oracles, file edits.

The pipeline only consumes the concatenated text of an oracle's event stream.
"""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass

from config.defaults import get_timeout_config
from utils.llm import stream_text

logger = logging.getLogger(__name__)

_PROMPT_FILE = os.path.join(os.path.dirname(__file__), "prompts", "oracle_system.txt")

# Tools that change files or run code
WRITE_TOOLS = ["Write", "Edit", "MultiEdit", "NotebookEdit", "Bash"]


def _load_prompt():
    with open(_PROMPT_FILE) as f:
        return f.read()


@dataclass(frozen=True)
class OracleEvent:
    type: str       # "text" | "done"
    text: str = ""


class GenerationOracle(ABC):
    """Prompt in, stream of OracleEvents out."""

    name = "base"
    # True when the oracle edits the working directory itself. Otherwise the
    # pipeline applies fenced files from the returned text.
    edits_in_place = False

    @abstractmethod
    def query(self, prompt, turn_budget=1, cwd=None):
        """Return an async iterator of OracleEvent."""

    async def _collect(self, prompt, turn_budget, cwd):
        parts = []
        async for event in self.query(prompt, turn_budget=turn_budget, cwd=cwd):
            if event.type == "text":
                parts.append(event.text)
        return "".join(parts)

    async def complete(self, prompt, turn_budget=1, cwd=None, timeout=None):
        """Concatenate the text of one query, abandoning it after timeout seconds.

        Raises:
            asyncio.TimeoutError: If the oracle did not finish in time.
        """
        if timeout is None:
            timeout = get_timeout_config()["request_timeout"]
        return await asyncio.wait_for(self._collect(prompt, turn_budget, cwd), timeout)


class AnthropicOracle(GenerationOracle):
    """Plain Messages API oracle. Files come back as fenced code blocks."""

    name = "anthropic"

    def __init__(self, system_prompt=None, max_tokens=None):
        self.system_prompt = system_prompt
        self.max_tokens = max_tokens

    async def query(self, prompt, turn_budget=1, cwd=None):
        system_prompt = self.system_prompt or _load_prompt()
        # The Messages API has no tool loop, so turn_budget is always one call
        async for chunk in stream_text(system_prompt, prompt, max_tokens=self.max_tokens):
            yield OracleEvent(type="text", text=chunk)
        yield OracleEvent(type="done")


class ClaudeCodeOracle(GenerationOracle):
    """Agentic oracle that edits files in cwd through the Claude Agent SDK.

    Only usable with sandboxes whose working directory is on this machine.
    Without a cwd it runs with no tools and only answers in text.
    """

    name = "claude-code"
    edits_in_place = True

    def __init__(self, system_prompt=None, allowed_tools=None, model=None):
        self.system_prompt = system_prompt
        self.allowed_tools = allowed_tools or ["Read", "Write", "Edit", "Glob", "Grep"]
        self.model = model

    async def query(self, prompt, turn_budget=1, cwd=None):
        from claude_agent_sdk import AssistantMessage, ClaudeAgentOptions, ResultMessage, TextBlock
        from claude_agent_sdk import query as agent_query

        if cwd:
            tools, denied, permission_mode = self.allowed_tools, [], "acceptEdits"
        else:
            # No session directory: answer in text, never touch the caller's files
            tools, denied, permission_mode = [], WRITE_TOOLS, "default"
        options = ClaudeAgentOptions(
            system_prompt=self.system_prompt or _load_prompt(),
            max_turns=turn_budget,
            cwd=cwd,
            allowed_tools=tools,
            disallowed_tools=denied,
            permission_mode=permission_mode,
            model=self.model,
        )
        async for message in agent_query(prompt=prompt, options=options):
            if isinstance(message, AssistantMessage):
                for block in message.content:
                    if isinstance(block, TextBlock):
                        yield OracleEvent(type="text", text=block.text)
            elif isinstance(message, ResultMessage):
                if message.is_error:
                    logger.warning("Claude Code run ended with an error: %s", message.result)
                yield OracleEvent(type="done")


def get_oracle(name):
    if name == "anthropic":
        return AnthropicOracle()
    if name == "claude-code":
        return ClaudeCodeOracle()
    raise ValueError(f"Unknown oracle: {name}")
