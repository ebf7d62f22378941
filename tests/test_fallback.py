"""Tests for agents.fallback — degraded and chunked generation."""

import asyncio

from agents.fallback import (NO_SANDBOX_WARNING, TIMEOUT_WARNING, ChunkedGenerator,
                             DegradedGenerator)
from core.state import GenerationRequest
from fakes import FakeOracle


def _request(target_type="plugin"):
    return GenerationRequest(project_name="weather", description="Weather lookups",
                             target_type=target_type)


def _paths(result):
    return [f.path for f in result.files]


def test_degraded_asks_oracle_for_each_essential_file():
    oracle = FakeOracle(responses=[
        "```toml\n[project]\nname = \"weather\"\n```",
        "def main():\n    return 'sunny'",
        "from dataclasses import dataclass",
        "# Weather",
    ])
    result = asyncio.run(DegradedGenerator(oracle).run(_request()))

    assert result.success is True
    assert result.strategy == "degraded"
    assert result.execution_results is None
    assert result.warnings == (NO_SANDBOX_WARNING,)
    assert len(oracle.prompts) == 4
    assert "File: src/weather/plugin.py" in oracle.prompts[1]

    files = {f.path: f.content for f in result.files}
    assert files["pyproject.toml"] == "[project]\nname = \"weather\"\n"
    assert files["src/weather/plugin.py"] == "def main():\n    return 'sunny'\n"
    assert files["README.md"] == "# Weather\n"
    # Skeleton files the oracle was not asked for are still there
    assert "tests/test_smoke.py" in files
    assert "src/weather/__init__.py" in files


def test_degraded_uses_template_when_oracle_fails():
    oracle = FakeOracle(error=RuntimeError("overloaded"))
    result = asyncio.run(DegradedGenerator(oracle).run(_request("workflow"), warnings=("earlier",)))

    assert result.success is True
    assert result.warnings[:2] == (NO_SANDBOX_WARNING, "earlier")
    assert "src/weather/workflow.py: oracle completion failed (overloaded); template used" \
        in result.warnings
    files = {f.path: f.content for f in result.files}
    assert "src/weather/types.py" in files
    assert "@dataclass" in files["src/weather/types.py"]


def test_degraded_treats_empty_reply_as_failure():
    oracle = FakeOracle(default="   ")
    result = asyncio.run(DegradedGenerator(oracle).run(_request()))
    assert any("empty completion" in w for w in result.warnings)
    assert "README.md" in _paths(result)


def test_degraded_per_file_timeout():
    oracle = FakeOracle(default="late", delay=1)
    result = asyncio.run(DegradedGenerator(oracle, file_timeout=0.01).run(_request()))
    assert sum("timed out" in w for w in result.warnings) == 4
    assert result.success is True


def test_chunked_is_template_only():
    result = ChunkedGenerator().run(_request("agent"), warnings=("Whole-run timeout",))
    assert result.strategy == "chunked"
    assert result.success is True
    assert result.warnings == (TIMEOUT_WARNING, "Whole-run timeout")
    paths = _paths(result)
    for path in ("pyproject.toml", "src/weather/agent.py", "character.json", "Dockerfile",
                 "src/weather/types.py"):
        assert path in paths
    assert len(paths) == len(set(paths))
