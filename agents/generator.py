"""Generator agent — task brief, first-iteration prompt, and applying oracle output."""

import os

from config.targets import TARGETS
from core.state import FileEntry
from utils.folder_naming import package_name
from utils.llm import parse_files

_GUIDELINES = [
    "Follow the existing src/ layout and keep the package importable",
    "Read configuration and secrets from environment variables",
    "Include pytest tests for every public function, no network access in tests",
    "Document all public APIs with docstrings",
    "Handle errors from external APIs explicitly",
    "Keep flake8 and mypy clean",
]


def _bullets(items, empty="None"):
    items = list(items)
    if not items:
        return f"- {empty}"
    return "\n".join(f"- {item}" for item in items)


def build_task_brief(request, model=None, prd=""):
    """Render the standing context handed to the oracle (written as TASK.md)."""
    target = TARGETS[request.target_type]
    pkg = package_name(request.project_name)

    env_lines = []
    if model:
        for var in model.env_vars:
            flags = ", ".join(f for f, on in (("required", var.required),
                                               ("sensitive", var.sensitive)) if on)
            env_lines.append(f"{var.name} ({flags or 'optional'}): {var.description}")

    sections = [
        f"# {request.project_name}",
        f"## Project Type\n{target['name']} ({request.target_type})",
        f"## Description\n{request.description}",
        f"## Requirements\n{_bullets(request.requirements)}",
        f"## APIs\n{_bullets(request.external_apis)}",
        f"## Test Scenarios\n{_bullets(request.test_scenarios, 'Standard unit and integration tests')}",
        f"## Environment Variables\n{_bullets(env_lines)}",
        f"## Development Guidelines\n{_bullets(_GUIDELINES)}",
        "## File Structure\n"
        "```\n"
        f"pyproject.toml\n"
        f"src/{pkg}/__init__.py\n"
        f"src/{pkg}/{os.path.basename(target['entry_path'])}   # entry point\n"
        "tests/                 # pytest suite\n"
        "```",
    ]
    if prd:
        sections.append(f"## Product Requirements\n{prd}")
    return "\n\n".join(sections) + "\n"


def build_initial_prompt(request, brief):
    """Iteration 1: the full task brief."""
    return (
        f"Create a complete {request.target_type} project named {request.project_name}.\n\n"
        f"{brief}\n"
        "Generate a complete, production-ready implementation. "
        "Include error handling, logging, type hints and tests."
    )


def files_from_output(output):
    """Turn fenced file blocks in oracle text into FileEntry objects.

    Later blocks for the same path win.
    """
    by_path = {}
    for path, content in parse_files(output):
        while path.startswith("./"):
            path = path[2:]
        # parse_files drops the final newline; flake8 wants it back
        by_path[path] = content + "\n" if content else content
    return [FileEntry(path=p, content=c) for p, c in by_path.items()]
