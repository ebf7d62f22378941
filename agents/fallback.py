"""Fallback generators used when the sandboxed loop cannot run or cannot finish.

DegradedGenerator asks the oracle for each essential file with no validation.
ChunkedGenerator renders a minimal complete project with no oracle at all.
Both always return a result carrying an explicit warning.
"""

import asyncio
import logging
import os

from config.defaults import DEFAULTS
from config.targets import TARGETS, format_path
from core.scaffold import deploy_files, scaffold_files, template_variables, types_files
from core.state import FileEntry, GenerationResult
from utils.llm import strip_fences

logger = logging.getLogger(__name__)

_PROMPT_FILE = os.path.join(os.path.dirname(__file__), "prompts", "fallback_file.txt")

NO_SANDBOX_WARNING = (
    "Generated without sandboxed verification: no install, lint, typecheck, build, "
    "test or security checks were run."
)
TIMEOUT_WARNING = (
    "Generation timed out; returned a minimal project skeleton (chunked fallback) "
    "without oracle output or validation."
)

# (path pattern, purpose) for each file the degraded path asks the oracle for
ESSENTIAL_FILES = [
    ("pyproject.toml", "Packaging manifest with project metadata and dependencies"),
    ("{entry}", "Main entry point implementing the requested functionality"),
    ("src/{pkg}/types.py", "Dataclasses and type definitions shared by the package"),
    ("README.md", "Usage documentation and required environment variables"),
]


def _load_prompt():
    with open(_PROMPT_FILE) as f:
        return f.read()


def _merge(base, overrides):
    """Files in overrides replace same-path files in base; order is kept."""
    by_path = {f.path: f for f in base}
    for f in overrides:
        by_path[f.path] = f
    return list(by_path.values())


class DegradedGenerator:
    """One oracle completion per essential file, no sandbox and no gate."""

    name = "degraded"

    def __init__(self, oracle, file_timeout=None):
        self.oracle = oracle
        self.file_timeout = file_timeout or DEFAULTS["fallback_file_timeout"]

    async def run(self, request, model=None, warnings=()):
        variables = template_variables(request, model)
        pkg = variables["package"]
        entry = format_path(TARGETS[request.target_type]["entry_path"], pkg)
        skeleton = {f.path: f for f in scaffold_files(request, model) + types_files(request, model)}

        warnings = [NO_SANDBOX_WARNING, *warnings]
        generated = []
        for pattern, purpose in ESSENTIAL_FILES:
            path = pattern.replace("{entry}", entry).replace("{pkg}", pkg)
            prompt = _load_prompt().format(
                target_type=request.target_type,
                project_name=request.project_name,
                package=pkg,
                description=request.description,
                path=path,
                purpose=purpose,
            )
            try:
                text = await self.oracle.complete(prompt, timeout=self.file_timeout)
                content = strip_fences(text)
                if not content.strip():
                    raise ValueError("empty completion")
                generated.append(FileEntry(path=path, content=content + "\n"))
            except Exception as e:
                reason = "timed out" if isinstance(e, asyncio.TimeoutError) else str(e)
                logger.warning("Oracle could not write %s (%s); using template", path, reason)
                warnings.append(f"{path}: oracle completion failed ({reason}); template used")
                if path in skeleton:
                    generated.append(skeleton[path])

        files = _merge(skeleton.values(), generated)
        logger.info("Degraded path produced %d file(s) for %s", len(files), request.project_name)
        return GenerationResult(
            success=True,
            files=tuple(files),
            execution_results=None,
            warnings=tuple(warnings),
            strategy=self.name,
        )


class ChunkedGenerator:
    """Minimal-but-complete project from templates. Used after a whole-run timeout."""

    name = "chunked"

    def run(self, request, model=None, warnings=()):
        files = _merge(
            scaffold_files(request, model),
            deploy_files(request, model) + types_files(request, model),
        )
        logger.info("Chunked fallback produced %d file(s) for %s", len(files),
                    request.project_name)
        return GenerationResult(
            success=True,
            files=tuple(files),
            execution_results=None,
            warnings=(TIMEOUT_WARNING, *warnings),
            strategy=self.name,
        )
