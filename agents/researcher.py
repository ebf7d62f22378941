"""Researcher agent — API research and similar-project search ahead of generation.

All calls are read-only, so API research runs concurrently.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field

from config.defaults import DEFAULTS
from utils.llm import extract_bullets, extract_code_blocks, extract_json_array

logger = logging.getLogger(__name__)

_PROMPT_DIR = os.path.join(os.path.dirname(__file__), "prompts")

BEST_PRACTICE_KEYWORDS = ("should", "must", "always", "never")

# Conventions every generated Python project follows
FRAMEWORK_CONTEXT = {
    "core_types": ["Plugin", "Action", "Provider", "Service"],
    "patterns": ["Service pattern", "Action validation", "Provider context"],
    "conventions": ["Python 3", "src/ layout", "pyproject.toml packaging", "pytest"],
}


def _load_prompt(name):
    with open(os.path.join(_PROMPT_DIR, name)) as f:
        return f.read()


@dataclass(frozen=True)
class APIResearch:
    name: str
    documentation: str
    examples: list = field(default_factory=list)
    best_practices: list = field(default_factory=list)


@dataclass(frozen=True)
class ResearchResult:
    apis: list = field(default_factory=list)
    similar_projects: list = field(default_factory=list)
    context: dict = field(default_factory=dict)
    warnings: list = field(default_factory=list)


class ResearcherAgent:
    """Gathers API documentation and prior art for a GenerationRequest."""

    name = "researcher"

    def __init__(self, oracle, timeout=None):
        self.oracle = oracle
        self.timeout = timeout or DEFAULTS["research_timeout"]

    async def research_api(self, request, api):
        prompt = _load_prompt("research_api.txt").format(api=api, target_type=request.target_type)
        text = await self.oracle.complete(prompt, timeout=self.timeout)
        return APIResearch(
            name=api,
            documentation=text,
            examples=extract_code_blocks(text),
            best_practices=extract_bullets(text, BEST_PRACTICE_KEYWORDS),
        )

    async def similar_projects(self, request):
        prompt = _load_prompt("similar_projects.txt").format(
            project_name=request.project_name,
            description=request.description,
            target_type=request.target_type,
        )
        text = await self.oracle.complete(prompt, timeout=self.timeout)
        return [p for p in extract_json_array(text) if isinstance(p, dict)]

    async def run(self, request):
        """Research every external API plus similar projects.

        A failed call becomes a warning; the rest of the research is kept.
        """
        logger.info("Researching %d API(s) for %s", len(request.external_apis),
                    request.project_name)
        outcomes = await asyncio.gather(
            *(self.research_api(request, api) for api in request.external_apis),
            self.similar_projects(request),
            return_exceptions=True,
        )

        warnings = []
        apis = []
        for api, outcome in zip(request.external_apis, outcomes):
            if isinstance(outcome, BaseException):
                warnings.append(f"API research for {api} failed: {_describe(outcome)}")
            else:
                apis.append(outcome)

        similar = outcomes[-1]
        if isinstance(similar, BaseException):
            warnings.append(f"Similar project search failed: {_describe(similar)}")
            similar = []

        for w in warnings:
            logger.warning(w)
        return ResearchResult(apis=apis, similar_projects=similar,
                              context=dict(FRAMEWORK_CONTEXT), warnings=warnings)


def _describe(exc):
    if isinstance(exc, asyncio.TimeoutError):
        return "timed out"
    return str(exc) or type(exc).__name__
