"""Planner agent — writes a PRD and implementation plan from request + research."""

import logging
import os

from config.defaults import DEFAULTS

logger = logging.getLogger(__name__)

_PROMPT_FILE = os.path.join(os.path.dirname(__file__), "prompts", "planner.txt")


def _load_prompt():
    with open(_PROMPT_FILE) as f:
        return f.read()


def _research_section(research):
    api_lines = []
    for api in research.apis:
        api_lines.append(f"{api.name}:\n{api.documentation}")
        if api.best_practices:
            api_lines.append("Best practices: " + "; ".join(api.best_practices))
    project_lines = []
    for p in research.similar_projects:
        patterns = ", ".join(p.get("patterns", []))
        project_lines.append(f"{p.get('name', '?')}: {p.get('description', '')}"
                             + (f"\nPatterns: {patterns}" if patterns else ""))
    ctx = research.context
    return (
        "API Research:\n" + ("\n\n".join(api_lines) or "None") + "\n\n"
        "Similar Projects:\n" + ("\n\n".join(project_lines) or "None") + "\n\n"
        "Project Context:\n"
        f"- Core Types: {', '.join(ctx.get('core_types', []))}\n"
        f"- Patterns: {', '.join(ctx.get('patterns', []))}\n"
        f"- Conventions: {', '.join(ctx.get('conventions', []))}"
    )


class PlannerAgent:
    """Produces the PRD text appended to the task brief."""

    name = "planner"

    def __init__(self, oracle, timeout=None):
        self.oracle = oracle
        self.timeout = timeout or DEFAULTS["prd_timeout"]

    async def run(self, request, research):
        logger.info("Generating PRD for %s", request.project_name)
        requirements = "\n".join(f"- {r}" for r in request.requirements) or "- None"
        user_message = (
            f"{_load_prompt()}\n\n"
            f"Project: {request.project_name}\n"
            f"Type: {request.target_type}\n"
            f"Description: {request.description}\n\n"
            f"Requirements:\n{requirements}\n\n"
            f"{_research_section(research)}"
        )
        return await self.oracle.complete(user_message, timeout=self.timeout)
